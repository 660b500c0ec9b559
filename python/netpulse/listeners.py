"""Listener interfaces for flow table events."""

from __future__ import annotations

from typing import Protocol

from .packet_sample import FlowKey


class NewPortListener(Protocol):
    def on_new_destination_port(self, port: int, key: FlowKey, ts: int) -> None:  # pragma: no cover - protocol definition
        ...


__all__ = ["NewPortListener"]
