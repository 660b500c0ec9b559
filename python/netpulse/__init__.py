"""Real-time flow telemetry: capture, aggregate, detect spikes, publish."""

from .adapters import AdapterAddress, AdapterInfo, find_device_by_address, list_adapters
from .alerts import Alert, AlertLog, make_alert
from .anomaly import RollingStats, Spike, SpikeDetector
from .broadcast import BroadcastHub, WebSocketSession
from .capture_source import CaptureSource, CaptureStatus
from .config import ServiceConfig
from .flow import Flow
from .flow_table import FlowAggregates, FlowTable, TopTalker
from .live_capture import (
    CaptureAvailable,
    CaptureUnavailable,
    LiveCapture,
    LiveCaptureError,
    decode_frame,
    probe_capture,
)
from .messages import encode_message, parse_command
from .packet_sample import FlowKey, PacketSample
from .scheduler import TickScheduler
from .series import StatsPoint, StatsSeries
from .service import TelemetryService
from .simulator import SyntheticTraffic
from .timers import RepeatingTimer

__all__ = [
    "AdapterAddress",
    "AdapterInfo",
    "list_adapters",
    "find_device_by_address",
    "Alert",
    "AlertLog",
    "make_alert",
    "RollingStats",
    "Spike",
    "SpikeDetector",
    "BroadcastHub",
    "WebSocketSession",
    "CaptureSource",
    "CaptureStatus",
    "ServiceConfig",
    "Flow",
    "FlowAggregates",
    "FlowTable",
    "TopTalker",
    "CaptureAvailable",
    "CaptureUnavailable",
    "LiveCapture",
    "LiveCaptureError",
    "decode_frame",
    "probe_capture",
    "encode_message",
    "parse_command",
    "FlowKey",
    "PacketSample",
    "TickScheduler",
    "StatsPoint",
    "StatsSeries",
    "TelemetryService",
    "SyntheticTraffic",
    "RepeatingTimer",
]
