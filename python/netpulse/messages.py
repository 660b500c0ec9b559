"""JSON wire protocol between the service and dashboard viewers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .capture_source import MODES

logger = logging.getLogger(__name__)

# Server -> client message types.
SNAPSHOT = "snapshot"
STATS = "stats"
SERIES = "series"
TOP_TALKERS = "topTalkers"
FLOWS = "flows"
ALERTS = "alerts"
ADAPTERS = "adapters"
MODE = "mode"
SELECTED_ADAPTER = "selectedAdapter"


def encode_message(message_type: str, data: object) -> str:
    return json.dumps({"type": message_type, "data": data}, separators=(",", ":"), ensure_ascii=False)


# Client -> server commands ---------------------------------------------
@dataclass(frozen=True)
class SetMode:
    mode: str


@dataclass(frozen=True)
class SetAdapter:
    adapter_name: Optional[str] = None


@dataclass(frozen=True)
class Ping:
    pass


Command = Union[SetMode, SetAdapter, Ping]


def parse_command(raw: Union[str, bytes]) -> Optional[Command]:
    """Parse an inbound message; anything malformed or unknown yields ``None``."""

    try:
        message = json.loads(raw)
    except (ValueError, TypeError):
        logger.debug("Dropping malformed client message")
        return None

    if not isinstance(message, dict):
        return None

    message_type = message.get("type")
    data = message.get("data")

    if message_type == "ping":
        return Ping()

    if message_type == "setMode":
        mode = data.get("mode") if isinstance(data, dict) else None
        if mode not in MODES:
            return None
        return SetMode(mode=mode)

    if message_type == "setAdapter":
        if data is None:
            return SetAdapter()
        if not isinstance(data, dict):
            return None
        name = data.get("adapterName")
        if name is not None and not isinstance(name, str):
            return None
        return SetAdapter(adapter_name=name or None)

    logger.debug("Ignoring unknown client message type %r", message_type)
    return None


__all__ = [
    "SNAPSHOT",
    "STATS",
    "SERIES",
    "TOP_TALKERS",
    "FLOWS",
    "ALERTS",
    "ADAPTERS",
    "MODE",
    "SELECTED_ADAPTER",
    "encode_message",
    "SetMode",
    "SetAdapter",
    "Ping",
    "Command",
    "parse_command",
]
