"""Per-tick traffic statistics and their sliding time series."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

SERIES_CAPACITY = 120


@dataclass(frozen=True)
class StatsPoint:
    ts: int
    bytes_per_sec: int
    packets_per_sec: int
    active_flows: int
    unique_dst_ips: int
    unique_dst_ports: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "ts": self.ts,
            "bytesPerSec": self.bytes_per_sec,
            "packetsPerSec": self.packets_per_sec,
            "activeFlows": self.active_flows,
            "uniqueDstIps": self.unique_dst_ips,
            "uniqueDstPorts": self.unique_dst_ports,
        }


class StatsSeries:
    """Maintains the most recent *capacity* stats points in time order."""

    def __init__(self, capacity: int = SERIES_CAPACITY) -> None:
        self.capacity = capacity
        self._points: Deque[StatsPoint] = deque(maxlen=capacity)
        self.points_produced = 0

    def append(self, point: StatsPoint) -> None:
        self._points.append(point)
        self.points_produced += 1

    def latest(self) -> Optional[StatsPoint]:
        return self._points[-1] if self._points else None

    def points(self) -> List[StatsPoint]:
        return list(self._points)

    def to_list(self) -> List[Dict[str, object]]:
        return [point.to_dict() for point in self._points]

    def __len__(self) -> int:
        return len(self._points)


__all__ = ["SERIES_CAPACITY", "StatsPoint", "StatsSeries"]
