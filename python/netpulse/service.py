"""WebSocket telemetry service wiring capture, aggregation and viewers."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Dict, List, Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosedError

from . import messages
from .adapters import AdapterInfo, list_adapters
from .alerts import INFO, Alert, AlertLog, make_alert
from .anomaly import SpikeDetector
from .broadcast import BroadcastHub, Session, WebSocketSession
from .capture_source import CaptureSource, CaptureStatus
from .config import ServiceConfig
from .flow_table import FlowTable
from .live_capture import probe_capture
from .packet_sample import FlowKey, PacketSample
from .scheduler import TickScheduler
from .series import StatsPoint, StatsSeries
from .utils import now_ms

logger = logging.getLogger(__name__)


class TelemetryService:
    """Owns the telemetry pipeline and the viewer-facing WebSocket server."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        probe: Callable = probe_capture,
        clock: Callable[[], int] = now_ms,
        adapter_provider: Callable[[], List[AdapterInfo]] = list_adapters,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or ServiceConfig()
        self.config.validate()
        self.clock = clock
        self.adapter_provider = adapter_provider

        self.mode = self.config.mode
        self.selected_adapter = self.config.adapter_hint

        self.hub = BroadcastHub()
        self.flow_table = FlowTable(idle_timeout=self.config.idle_timeout_ms)
        self.flow_table.add_port_listener(self)
        self.series = StatsSeries(self.config.series_capacity)
        self.alerts = AlertLog(self.config.alert_capacity, on_change=self._publish_alerts)
        self.detector = SpikeDetector(self.config.spike_window, self.config.spike_threshold)
        self.scheduler = TickScheduler(
            self.flow_table,
            self.series,
            self.detector,
            self.alerts,
            self.hub.broadcast,
            clock=clock,
            interval=self.config.tick_interval_s,
            adapter_provider=adapter_provider,
            adapter_interval_ms=self.config.adapter_interval_ms,
        )
        self.capture = CaptureSource(
            self.on_packet,
            self.on_capture_status,
            mode=self.mode,
            adapter_hint=self.selected_adapter,
            bpf_filter=self.config.bpf_filter,
            probe=probe,
            rng=rng if rng is not None else random.Random(self.config.seed),
        )

        self._server: Optional[Server] = None
        self._closed = False

    # ------------------------------------------------------------------
    @property
    def port(self) -> Optional[int]:
        """Bound TCP port, useful when configured with port 0."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def start(self) -> None:
        """Bind the listening socket, then start capture and ticking.

        A bind failure propagates as ``OSError``; it is the only fatal error.
        """
        if self._server is not None:
            return
        self._server = await serve(self._handle_connection, self.config.host, self.config.port)
        logger.info("Telemetry server listening on ws://%s:%s", self.config.host, self.port)

        self.capture.start()
        self.scheduler.start(asyncio.get_running_loop())

    async def run(self) -> None:
        await self.start()
        assert self._server is not None
        try:
            await self._server.wait_closed()
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self.scheduler.stop()
        self.capture.stop()
        await self.hub.close_all()

        server, self._server = self._server, None
        if server is not None:
            server.close()
            await server.wait_closed()
        logger.info("Telemetry service closed")

    # ------------------------------------------------------------------
    def on_packet(self, sample: PacketSample) -> None:
        self.flow_table.ingest(sample, self.clock())

    def on_capture_status(self, status: CaptureStatus) -> None:
        if status.message:
            self.alerts.push(
                make_alert(INFO, "Capture status", f"{status.using.upper()}: {status.message}", self.clock())
            )

    def on_new_destination_port(self, port: int, key: FlowKey, ts: int) -> None:
        self.alerts.push(
            make_alert(INFO, "New destination port observed", f"Port {port} seen in {key.describe()}", ts)
        )

    def _publish_alerts(self, alerts: List[Alert]) -> None:
        self.hub.broadcast(messages.encode_message(messages.ALERTS, [alert.to_dict() for alert in alerts]))

    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, object]:
        ts = self.clock()
        aggregates = self.flow_table.aggregates()
        stats = self.series.latest() or StatsPoint(
            ts=ts,
            bytes_per_sec=0,
            packets_per_sec=0,
            active_flows=0,
            unique_dst_ips=aggregates.unique_dst_ips,
            unique_dst_ports=aggregates.unique_dst_ports,
        )
        return {
            "ts": ts,
            "adapters": [adapter.to_dict() for adapter in self.adapter_provider()],
            "selectedAdapterName": self.selected_adapter,
            "mode": self.mode,
            "stats": stats.to_dict(),
            "series": self.series.to_list(),
            "topTalkers": [talker.to_dict() for talker in aggregates.top_talkers],
            "flows": [flow.to_dict() for flow in aggregates.flows],
            "alerts": self.alerts.to_list(),
        }

    def connect(self, session: Session) -> bool:
        """Register *session* and send it the full snapshot."""
        self.hub.add(session)
        return self.hub.send(session, messages.encode_message(messages.SNAPSHOT, self.snapshot()))

    def disconnect(self, session: Session) -> None:
        self.hub.discard(session)

    def handle_message(self, raw) -> None:
        command = messages.parse_command(raw)
        if command is None:
            return

        if isinstance(command, messages.SetMode):
            self.mode = command.mode
            logger.info("Capture mode set to %s", self.mode)
            self.capture.configure(self.mode, self.selected_adapter)
            self.hub.broadcast(messages.encode_message(messages.MODE, {"mode": self.mode}))
        elif isinstance(command, messages.SetAdapter):
            self.selected_adapter = command.adapter_name
            logger.info("Selected adapter set to %s", self.selected_adapter)
            self.capture.configure(self.mode, self.selected_adapter)
            self.hub.broadcast(
                messages.encode_message(messages.SELECTED_ADAPTER, {"adapterName": self.selected_adapter})
            )
        # Ping is a liveness probe; nothing to do.

    async def _handle_connection(self, connection: ServerConnection) -> None:
        session = WebSocketSession(connection)
        self.connect(session)
        try:
            async for raw in connection:
                self.handle_message(raw)
        except ConnectionClosedError:
            logger.debug("Viewer %r dropped without closing handshake", session)
        finally:
            self.disconnect(session)


__all__ = ["TelemetryService"]
