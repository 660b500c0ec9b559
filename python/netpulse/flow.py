"""Aggregated counters for one directional flow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .packet_sample import FlowKey, PacketSample


@dataclass
class Flow:
    key: FlowKey
    bytes: int
    packets: int
    first_seen: int
    last_seen: int

    @classmethod
    def from_sample(cls, sample: PacketSample, ts: int) -> "Flow":
        return cls(
            key=sample.key,
            bytes=sample.bytes,
            packets=1,
            first_seen=ts,
            last_seen=ts,
        )

    # ------------------------------------------------------------------
    def add_sample(self, sample: PacketSample, ts: int) -> None:
        self.bytes += sample.bytes
        self.packets += 1
        self.last_seen = ts

    def idle_for(self, now: int) -> int:
        return now - self.last_seen

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.key.flow_id,
            "protocol": self.key.protocol,
            "srcIp": self.key.src_ip,
            "srcPort": self.key.src_port,
            "dstIp": self.key.dst_ip,
            "dstPort": self.key.dst_port,
            "bytes": self.bytes,
            "packets": self.packets,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
        }


__all__ = ["Flow"]
