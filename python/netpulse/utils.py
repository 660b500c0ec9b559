"""Small helpers shared by the telemetry pipeline."""

from __future__ import annotations

import hashlib
import re
import time
from typing import Optional

MILLIS_PER_SECOND = 1_000

_IPV4_PATTERN = re.compile(r"\b(\d{1,3}(?:\.\d{1,3}){3})\b")


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * MILLIS_PER_SECOND)


def round_half_up(value: float) -> int:
    """Round a non-negative value to the nearest int, halves away from zero."""
    return int(value + 0.5)


def short_sha1(text: str, length: int) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:length]


def extract_ipv4(text: Optional[str]) -> Optional[str]:
    """Return the first dotted IPv4 address embedded in *text*, if any."""
    if not text:
        return None
    match = _IPV4_PATTERN.search(text)
    return match.group(1) if match else None


__all__ = ["MILLIS_PER_SECOND", "now_ms", "round_half_up", "short_sha1", "extract_ipv4"]
