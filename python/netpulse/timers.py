"""Cancellable repeating timers on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

Delay = Union[float, Callable[[], float]]


class RepeatingTimer:
    """Runs *callback* every *delay* seconds until :meth:`cancel` is called.

    *delay* may be a callable, evaluated before each reschedule, for timers
    with a randomised period. The callback runs on the loop thread and is
    rescheduled only after it returns, so invocations never overlap.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        delay: Delay,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        name: str = "timer",
    ) -> None:
        self._callback = callback
        self._delay = delay
        self._loop = loop
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._running = False

    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._running:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._running = True
        self._schedule()

    def cancel(self) -> None:
        self._running = False
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    def _next_delay(self) -> float:
        if callable(self._delay):
            return float(self._delay())
        return float(self._delay)

    def _schedule(self) -> None:
        assert self._loop is not None
        self._handle = self._loop.call_later(self._next_delay(), self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Timer %s callback failed", self.name)
        if self._running and self._handle is None:
            self._schedule()


__all__ = ["RepeatingTimer"]
