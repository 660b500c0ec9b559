"""Fixed-period orchestration of aggregation, detection and publishing."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from . import messages
from .adapters import AdapterInfo, list_adapters
from .alerts import WARNING, AlertLog, make_alert
from .anomaly import SpikeDetector
from .flow_table import FlowAggregates, FlowTable
from .series import StatsPoint, StatsSeries
from .timers import RepeatingTimer
from .utils import MILLIS_PER_SECOND, now_ms, round_half_up

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 1.0
ADAPTER_REFRESH_MS = 10_000

Publish = Callable[[str], object]


class TickScheduler:
    """Runs one aggregation/detection/publish cycle per tick.

    Every step of a tick runs on the event loop thread between packet
    callbacks, so the flow table, series and alert log are never mutated
    concurrently.
    """

    def __init__(
        self,
        flow_table: FlowTable,
        series: StatsSeries,
        detector: SpikeDetector,
        alerts: AlertLog,
        publish: Publish,
        *,
        clock: Callable[[], int] = now_ms,
        interval: float = TICK_INTERVAL_S,
        adapter_provider: Callable[[], List[AdapterInfo]] = list_adapters,
        adapter_interval_ms: int = ADAPTER_REFRESH_MS,
    ) -> None:
        self.flow_table = flow_table
        self.series = series
        self.detector = detector
        self.alerts = alerts
        self.publish = publish
        self.clock = clock
        self.interval = interval
        self.adapter_provider = adapter_provider
        self.adapter_interval_ms = adapter_interval_ms

        self.last_tick_at = clock()
        self.last_adapters_at = self.last_tick_at
        self._timer: Optional[RepeatingTimer] = None

    # ------------------------------------------------------------------
    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self._timer is not None:
            return
        self.last_tick_at = self.clock()
        self.last_adapters_at = self.last_tick_at
        self._timer = RepeatingTimer(self.tick, self.interval, loop=loop, name="tick")
        self._timer.start()
        logger.info("Tick scheduler started (interval %.2fs)", self.interval)

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            logger.info("Tick scheduler stopped")

    def is_running(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    def tick(self, now: Optional[int] = None) -> StatsPoint:
        ts = self.clock() if now is None else now
        elapsed_s = max(1, round_half_up((ts - self.last_tick_at) / MILLIS_PER_SECOND))
        self.last_tick_at = ts

        tick_bytes, tick_packets = self.flow_table.drain_counters()
        bytes_per_sec = round_half_up(tick_bytes / elapsed_s)
        packets_per_sec = round_half_up(tick_packets / elapsed_s)

        self.detector.observe(bytes_per_sec)

        active_flows = self.flow_table.prune(ts)
        aggregates = self.flow_table.aggregates()

        point = StatsPoint(
            ts=ts,
            bytes_per_sec=bytes_per_sec,
            packets_per_sec=packets_per_sec,
            active_flows=active_flows,
            unique_dst_ips=aggregates.unique_dst_ips,
            unique_dst_ports=aggregates.unique_dst_ports,
        )
        self.series.append(point)

        spike = self.detector.check(bytes_per_sec, self.series.points_produced)
        if spike is not None:
            self.alerts.push(
                make_alert(
                    WARNING,
                    "Traffic spike detected",
                    f"Bytes/sec {bytes_per_sec} (z={spike.z:.2f}, mean={spike.mean:.0f})",
                    ts,
                )
            )

        self._publish_tick(point, aggregates)

        if ts - self.last_adapters_at >= self.adapter_interval_ms:
            self.last_adapters_at = ts
            self.publish_adapters()

        return point

    def publish_adapters(self) -> None:
        adapters = [adapter.to_dict() for adapter in self.adapter_provider()]
        self.publish(messages.encode_message(messages.ADAPTERS, adapters))

    def _publish_tick(self, point: StatsPoint, aggregates: FlowAggregates) -> None:
        self.publish(messages.encode_message(messages.STATS, point.to_dict()))
        self.publish(messages.encode_message(messages.SERIES, self.series.to_list()))
        self.publish(
            messages.encode_message(
                messages.TOP_TALKERS,
                [talker.to_dict() for talker in aggregates.top_talkers],
            )
        )
        self.publish(
            messages.encode_message(messages.FLOWS, [flow.to_dict() for flow in aggregates.flows])
        )


__all__ = ["TICK_INTERVAL_S", "ADAPTER_REFRESH_MS", "TickScheduler"]
