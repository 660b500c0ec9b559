"""Packet source selection: live wire capture with a synthetic fallback."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional

from .live_capture import (
    CaptureAvailable,
    CaptureProbe,
    LiveCapture,
    LiveCaptureError,
    probe_capture,
)
from .packet_sample import PacketSample
from .simulator import SyntheticTraffic

logger = logging.getLogger(__name__)

LIVE = "live"
SIMULATE = "simulate"
MODES = (LIVE, SIMULATE)

# Mechanisms actually in use.
CAPTURE = "capture"

Probe = Callable[..., CaptureProbe]


@dataclass(frozen=True)
class CaptureStatus:
    mode: str
    using: str
    message: Optional[str] = None


class CaptureSource:
    """Supplies packet samples in ``live`` or ``simulate`` mode.

    When ``live`` is requested but no wire capture can be opened, the
    synthetic generator is started instead and the reason is reported once
    through *on_status*. Samples are always delivered on the event loop
    thread; samples produced by a mechanism that has since been stopped are
    dropped.
    """

    def __init__(
        self,
        on_packet: Callable[[PacketSample], None],
        on_status: Optional[Callable[[CaptureStatus], None]] = None,
        *,
        mode: str = SIMULATE,
        adapter_hint: Optional[str] = None,
        bpf_filter: Optional[str] = None,
        probe: Probe = probe_capture,
        rng: Optional[random.Random] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown capture mode: {mode!r}")
        self.mode = mode
        self.adapter_hint = adapter_hint
        self.bpf_filter = bpf_filter
        self._on_packet = on_packet
        self._on_status = on_status
        self._probe = probe
        self._rng = rng
        self._loop = loop

        self._running = False
        self._generation = 0
        self._simulator: Optional[SyntheticTraffic] = None
        self._capture: Optional[LiveCapture] = None
        self.status: Optional[CaptureStatus] = None

    # ------------------------------------------------------------------
    @property
    def mechanism(self) -> Optional[str]:
        if self._capture is not None:
            return CAPTURE
        if self._simulator is not None:
            return SIMULATE
        return None

    def is_running(self) -> bool:
        return self._running

    def configure(self, mode: str, adapter_hint: Optional[str] = None) -> Optional[CaptureStatus]:
        """Apply new settings, restarting the active mechanism if running."""
        if mode not in MODES:
            raise ValueError(f"Unknown capture mode: {mode!r}")
        self.mode = mode
        self.adapter_hint = adapter_hint
        if not self._running:
            return None
        self.stop()
        return self.start()

    def start(self) -> CaptureStatus:
        if self._running and self.status is not None:
            return self.status
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._running = True
        generation = self._generation

        if self.mode == SIMULATE:
            status = self._start_simulated(generation, "Simulated traffic mode")
        else:
            status = self._start_live(generation)

        self.status = status
        if self._on_status is not None:
            self._on_status(status)
        return status

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._generation += 1

        simulator, self._simulator = self._simulator, None
        capture, self._capture = self._capture, None
        if simulator is not None:
            simulator.stop()
        if capture is not None:
            capture.stop()
        logger.debug("Capture source stopped (mode=%s)", self.mode)

    # ------------------------------------------------------------------
    def _start_live(self, generation: int) -> CaptureStatus:
        probe = self._probe(self.adapter_hint, bpf_filter=self.bpf_filter)
        if not isinstance(probe, CaptureAvailable):
            return self._fall_back(generation, probe.reason)

        try:
            probe.capture.start(self._thread_sink(generation))
        except LiveCaptureError as exc:
            probe.capture.stop()
            return self._fall_back(generation, str(exc))

        self._capture = probe.capture
        logger.info("Live capture active on %s", probe.device)
        return CaptureStatus(mode=self.mode, using=CAPTURE, message=f"Live capture on {probe.device}")

    def _fall_back(self, generation: int, reason: str) -> CaptureStatus:
        logger.warning("Live capture unavailable (%s); falling back to simulated traffic", reason)
        return self._start_simulated(
            generation,
            f"Live capture unavailable ({reason}); using simulated traffic",
        )

    def _start_simulated(self, generation: int, message: str) -> CaptureStatus:
        simulator = SyntheticTraffic(
            lambda sample: self._deliver(generation, sample),
            rng=self._rng,
            loop=self._loop,
        )
        self._simulator = simulator
        simulator.start()
        return CaptureStatus(mode=self.mode, using=SIMULATE, message=message)

    def _thread_sink(self, generation: int) -> Callable[[PacketSample], None]:
        loop = self._loop
        assert loop is not None

        def forward(sample: PacketSample) -> None:
            try:
                loop.call_soon_threadsafe(self._deliver, generation, sample)
            except RuntimeError:  # pragma: no cover - loop closed while sniffing
                logger.debug("Dropping sample; event loop is closed")

        return forward

    def _deliver(self, generation: int, sample: PacketSample) -> None:
        if generation != self._generation or not self._running:
            return
        self._on_packet(sample)


__all__ = [
    "LIVE",
    "SIMULATE",
    "MODES",
    "CAPTURE",
    "CaptureStatus",
    "CaptureSource",
]
