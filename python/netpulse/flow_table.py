"""Keyed aggregation of packet samples into flows with idle eviction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .flow import Flow
from .listeners import NewPortListener
from .packet_sample import FlowKey, PacketSample

logger = logging.getLogger(__name__)

IDLE_TIMEOUT_MS = 60_000
NEW_PORT_NOTICE_INTERVAL_MS = 10_000
TOP_TALKER_LIMIT = 8
PUBLISHED_FLOW_LIMIT = 200


@dataclass
class TopTalker:
    ip: str
    bytes: int

    def to_dict(self) -> Dict[str, object]:
        return {"ip": self.ip, "bytes": self.bytes}


@dataclass
class FlowAggregates:
    unique_dst_ips: int = 0
    unique_dst_ports: int = 0
    top_talkers: List[TopTalker] = field(default_factory=list)
    flows: List[Flow] = field(default_factory=list)


class FlowTable:
    def __init__(
        self,
        idle_timeout: int = IDLE_TIMEOUT_MS,
        port_notice_interval: int = NEW_PORT_NOTICE_INTERVAL_MS,
    ) -> None:
        self.idle_timeout = idle_timeout
        self.port_notice_interval = port_notice_interval
        self._listener: Optional[NewPortListener] = None
        self._init_state()

    # ------------------------------------------------------------------
    def _init_state(self) -> None:
        self.flows: Dict[FlowKey, Flow] = {}
        self.seen_dst_ports: Set[int] = set()
        self._last_port_notice_at: Optional[int] = None
        self._tick_bytes = 0
        self._tick_packets = 0

    def add_port_listener(self, listener: NewPortListener) -> None:
        self._listener = listener

    def __len__(self) -> int:
        return len(self.flows)

    def __contains__(self, key: object) -> bool:
        return key in self.flows

    def get(self, key: FlowKey) -> Optional[Flow]:
        return self.flows.get(key)

    # ------------------------------------------------------------------
    def ingest(self, sample: PacketSample, now: int) -> Flow:
        key = sample.key
        flow = self.flows.get(key)

        if flow is not None:
            flow.add_sample(sample, now)
        else:
            flow = Flow.from_sample(sample, now)
            self.flows[key] = flow
            self._observe_dst_port(key, now)

        self._tick_bytes += sample.bytes
        self._tick_packets += 1
        return flow

    def _observe_dst_port(self, key: FlowKey, now: int) -> None:
        port = key.dst_port
        if port == 0 or port in self.seen_dst_ports:
            return
        self.seen_dst_ports.add(port)

        # One notice per interval across all ports.
        last = self._last_port_notice_at
        if last is not None and now - last <= self.port_notice_interval:
            return
        self._last_port_notice_at = now
        logger.debug("New destination port %d in %s", port, key.describe())
        if self._listener is not None:
            self._listener.on_new_destination_port(port, key, now)

    def drain_counters(self) -> Tuple[int, int]:
        """Return and reset the bytes/packets ingested since the last call."""
        counters = (self._tick_bytes, self._tick_packets)
        self._tick_bytes = 0
        self._tick_packets = 0
        return counters

    # ------------------------------------------------------------------
    def prune(self, now: int) -> int:
        expired = [key for key, flow in self.flows.items() if flow.idle_for(now) > self.idle_timeout]
        for key in expired:
            del self.flows[key]
        if expired:
            logger.debug("Evicted %d idle flows, %d remain", len(expired), len(self.flows))
        return len(self.flows)

    def aggregates(self) -> FlowAggregates:
        dst_ips: Set[str] = set()
        dst_ports: Set[int] = set()
        talker_bytes: Dict[str, int] = {}

        for flow in self.flows.values():
            dst_ips.add(flow.key.dst_ip)
            if flow.key.dst_port:
                dst_ports.add(flow.key.dst_port)
            talker_bytes[flow.key.src_ip] = talker_bytes.get(flow.key.src_ip, 0) + flow.bytes

        talkers = sorted(talker_bytes.items(), key=lambda item: item[1], reverse=True)
        flows = sorted(self.flows.values(), key=lambda flow: flow.bytes, reverse=True)

        return FlowAggregates(
            unique_dst_ips=len(dst_ips),
            unique_dst_ports=len(dst_ports),
            top_talkers=[TopTalker(ip, total) for ip, total in talkers[:TOP_TALKER_LIMIT]],
            flows=flows[:PUBLISHED_FLOW_LIMIT],
        )


__all__ = [
    "IDLE_TIMEOUT_MS",
    "NEW_PORT_NOTICE_INTERVAL_MS",
    "TOP_TALKER_LIMIT",
    "PUBLISHED_FLOW_LIMIT",
    "TopTalker",
    "FlowAggregates",
    "FlowTable",
]
