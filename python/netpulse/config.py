"""Runtime settings for the telemetry service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .alerts import ALERT_CAPACITY
from .anomaly import DEFAULT_WINDOW_SIZE, DEFAULT_Z_THRESHOLD, MIN_WINDOW_SIZE
from .capture_source import MODES, SIMULATE
from .flow_table import IDLE_TIMEOUT_MS
from .scheduler import ADAPTER_REFRESH_MS, TICK_INTERVAL_S
from .series import SERIES_CAPACITY

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7071


@dataclass
class ServiceConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    mode: str = SIMULATE
    adapter_hint: Optional[str] = None
    bpf_filter: Optional[str] = None
    tick_interval_s: float = TICK_INTERVAL_S
    idle_timeout_ms: int = IDLE_TIMEOUT_MS
    series_capacity: int = SERIES_CAPACITY
    alert_capacity: int = ALERT_CAPACITY
    spike_window: int = DEFAULT_WINDOW_SIZE
    spike_threshold: float = DEFAULT_Z_THRESHOLD
    adapter_interval_ms: int = ADAPTER_REFRESH_MS
    seed: Optional[int] = None

    def validate(self) -> None:
        """Raise ``ValueError`` describing the first invalid setting."""
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {', '.join(MODES)}, got {self.mode!r}")
        if not 0 <= self.port <= 65_535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if self.tick_interval_s <= 0:
            raise ValueError("tick interval must be greater than 0 seconds")
        if self.idle_timeout_ms <= 0:
            raise ValueError("idle timeout must be greater than 0 ms")
        if self.series_capacity <= 0 or self.alert_capacity <= 0:
            raise ValueError("series and alert capacities must be positive")
        if self.spike_window < MIN_WINDOW_SIZE:
            raise ValueError(f"spike window must be at least {MIN_WINDOW_SIZE} samples")
        if self.spike_threshold <= 0:
            raise ValueError("spike threshold must be positive")


__all__ = ["DEFAULT_HOST", "DEFAULT_PORT", "ServiceConfig"]
