"""Flow identity and the per-packet samples fed into the flow table."""

from __future__ import annotations

from dataclasses import dataclass

from .utils import short_sha1

TCP = "TCP"
UDP = "UDP"
ICMP = "ICMP"
OTHER = "OTHER"

PROTOCOLS = (TCP, UDP, ICMP, OTHER)


@dataclass(frozen=True)
class FlowKey:
    """Directional 5-tuple identifying a flow."""

    protocol: str
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int

    def __post_init__(self) -> None:
        if self.protocol not in PROTOCOLS:
            raise ValueError(f"Unknown protocol: {self.protocol!r}")

    # Flow id helpers -----------------------------------------------------
    @property
    def flow_id(self) -> str:
        return short_sha1(
            f"{self.protocol}|{self.src_ip}:{self.src_port}|{self.dst_ip}:{self.dst_port}",
            16,
        )

    def describe(self) -> str:
        return f"{self.protocol} {self.src_ip}:{self.src_port} → {self.dst_ip}:{self.dst_port}"


@dataclass(frozen=True)
class PacketSample:
    """A single observed packet, consumed immediately by the flow table."""

    protocol: str
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int
    bytes: int

    @property
    def key(self) -> FlowKey:
        return FlowKey(
            protocol=self.protocol,
            src_ip=self.src_ip,
            src_port=self.src_port,
            dst_ip=self.dst_ip,
            dst_port=self.dst_port,
        )


__all__ = ["TCP", "UDP", "ICMP", "OTHER", "PROTOCOLS", "FlowKey", "PacketSample"]
