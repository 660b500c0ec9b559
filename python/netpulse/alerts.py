"""Alert records and the bounded, deduplicated alert log."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

from .utils import now_ms, short_sha1

logger = logging.getLogger(__name__)

INFO = "info"
WARNING = "warning"
CRITICAL = "critical"

SEVERITIES = (INFO, WARNING, CRITICAL)

ALERT_CAPACITY = 100


@dataclass(frozen=True)
class Alert:
    id: str
    ts: int
    severity: str
    title: str
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "ts": self.ts,
            "severity": self.severity,
            "title": self.title,
        }
        if self.detail is not None:
            data["detail"] = self.detail
        return data


def make_alert(
    severity: str,
    title: str,
    detail: Optional[str] = None,
    ts: Optional[int] = None,
) -> Alert:
    """Build an alert whose id is a content hash of its fields."""
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown alert severity: {severity!r}")
    if ts is None:
        ts = now_ms()
    alert_id = short_sha1(f"{ts}|{severity}|{title}|{detail or ''}", 12)
    return Alert(id=alert_id, ts=ts, severity=severity, title=title, detail=detail)


class AlertLog:
    """Newest-first list of alerts, capped at *capacity* entries."""

    def __init__(
        self,
        capacity: int = ALERT_CAPACITY,
        on_change: Optional[Callable[[List[Alert]], None]] = None,
    ) -> None:
        self.capacity = capacity
        self.on_change = on_change
        self._alerts: Deque[Alert] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self):
        return iter(self._alerts)

    def push(self, alert: Alert) -> bool:
        """Insert *alert* unless one with the same id is already logged."""
        if any(existing.id == alert.id for existing in self._alerts):
            return False

        # appendleft on a full deque drops the oldest entry from the right.
        self._alerts.appendleft(alert)
        logger.info("Alert [%s] %s: %s", alert.severity, alert.title, alert.detail or "")

        if self.on_change is not None:
            self.on_change(self.items())
        return True

    def items(self) -> List[Alert]:
        return list(self._alerts)

    def to_list(self) -> List[Dict[str, object]]:
        return [alert.to_dict() for alert in self._alerts]


__all__ = [
    "INFO",
    "WARNING",
    "CRITICAL",
    "SEVERITIES",
    "ALERT_CAPACITY",
    "Alert",
    "make_alert",
    "AlertLog",
]
