"""Host network interface enumeration used for adapter selection."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

try:  # pragma: no cover - optional dependency discovered at runtime
    import psutil  # type: ignore
except Exception:  # pragma: no cover - any import failure disables psutil usage
    psutil = None  # type: ignore

IPV4 = "IPv4"
IPV6 = "IPv6"


@dataclass(frozen=True)
class AdapterAddress:
    family: str
    address: str

    def to_dict(self) -> Dict[str, object]:
        return {"family": self.family, "address": self.address}


@dataclass(frozen=True)
class AdapterInfo:
    """A host interface and the IP addresses bound to it."""

    name: str
    addresses: Sequence[AdapterAddress]

    def ipv4_addresses(self) -> List[str]:
        return [addr.address for addr in self.addresses if addr.family == IPV4]

    @property
    def is_loopback(self) -> bool:
        return _is_loopback(self.name, self.addresses)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "addresses": [addr.to_dict() for addr in self.addresses],
        }


def list_adapters() -> List[AdapterInfo]:
    """Return interfaces with at least one IPv4/IPv6 address, sorted by name."""

    if psutil is None:
        logger.debug("psutil unavailable; no adapters listed")
        return []

    try:
        interfaces = psutil.net_if_addrs()  # type: ignore[attr-defined]
    except Exception:  # pragma: no cover - platform dependent
        logger.debug("Failed to enumerate interfaces via psutil", exc_info=True)
        return []

    adapters: List[AdapterInfo] = []
    for name, entries in interfaces.items():
        addresses: List[AdapterAddress] = []
        for entry in entries:
            address = getattr(entry, "address", "")
            family = _family_label(getattr(entry, "family", None))
            if not address or family is None:
                continue
            addresses.append(AdapterAddress(family=family, address=address))
        if not addresses:
            continue
        adapters.append(AdapterInfo(name=name, addresses=tuple(addresses)))

    adapters.sort(key=lambda adapter: adapter.name)
    return adapters


def find_device_by_address(
    address: str,
    adapters: Optional[Sequence[AdapterInfo]] = None,
) -> Optional[str]:
    """Return the name of the adapter bound to *address*."""

    candidates = list_adapters() if adapters is None else adapters
    for adapter in candidates:
        if any(addr.address == address for addr in adapter.addresses):
            return adapter.name
    return None


def _is_loopback(name: str, addresses: Sequence[AdapterAddress]) -> bool:
    if any(addr.address.startswith("127.") for addr in addresses if addr.family == IPV4):
        return True
    if any(addr.address in {"::1", "0:0:0:0:0:0:0:1"} for addr in addresses if addr.family == IPV6):
        return True
    return name.lower().startswith(("lo", "loopback"))


def _family_label(family: object) -> Optional[str]:
    if family == socket.AF_INET:
        return IPV4
    if hasattr(socket, "AF_INET6") and family == socket.AF_INET6:
        return IPV6
    return None


__all__ = [
    "IPV4",
    "IPV6",
    "AdapterAddress",
    "AdapterInfo",
    "list_adapters",
    "find_device_by_address",
]
