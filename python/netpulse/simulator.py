"""Synthetic traffic generator used when live capture is unavailable."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from .packet_sample import TCP, UDP, PacketSample
from .timers import RepeatingTimer

logger = logging.getLogger(__name__)

LOCAL_TALKERS = ("10.0.0.10", "10.0.0.12", "10.0.0.20", "192.168.0.8")
REMOTE_HOSTS = ("1.1.1.1", "8.8.8.8", "104.16.123.96", "151.101.1.69", "13.107.42.12")
DESTINATION_PORTS = (53, 80, 443, 22, 3389, 445, 8080, 1194)

DNS_PORT = 53
BURST_RANGE = (50, 180)
PERIOD_RANGE_MS = (120, 260)
SOURCE_PORT_RANGE = (20_000, 65_000)
PACKET_SIZE_RANGE = (60, 1_400)


class SyntheticTraffic:
    """Emits randomised packet bursts on a cancellable timer."""

    def __init__(
        self,
        on_packet: Callable[[PacketSample], None],
        *,
        rng: Optional[random.Random] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._on_packet = on_packet
        self._rng = rng if rng is not None else random.Random()
        self._timer = RepeatingTimer(
            self.emit_burst,
            self._next_period,
            loop=loop,
            name="synthetic-traffic",
        )

    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._timer.is_running():
            return
        logger.info("Synthetic traffic generator started")
        self.emit_burst()
        self._timer.start()

    def stop(self) -> None:
        if not self._timer.is_running():
            return
        self._timer.cancel()
        logger.info("Synthetic traffic generator stopped")

    def is_running(self) -> bool:
        return self._timer.is_running()

    # ------------------------------------------------------------------
    def emit_burst(self) -> int:
        burst = self._rng.randint(*BURST_RANGE)
        for _ in range(burst):
            self._on_packet(self.make_sample())
        return burst

    def make_sample(self) -> PacketSample:
        rng = self._rng
        dst_port = rng.choice(DESTINATION_PORTS)
        return PacketSample(
            protocol=UDP if dst_port == DNS_PORT else TCP,
            src_ip=rng.choice(LOCAL_TALKERS),
            src_port=rng.randint(*SOURCE_PORT_RANGE),
            dst_ip=rng.choice(REMOTE_HOSTS),
            dst_port=dst_port,
            bytes=rng.randint(*PACKET_SIZE_RANGE),
        )

    def _next_period(self) -> float:
        return self._rng.randint(*PERIOD_RANGE_MS) / 1000.0


__all__ = [
    "LOCAL_TALKERS",
    "REMOTE_HOSTS",
    "DESTINATION_PORTS",
    "SyntheticTraffic",
]
