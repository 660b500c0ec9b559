"""Wire capture bridging Scapy sniffing with the dpkt frame decoder."""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from .adapters import AdapterInfo, find_device_by_address, list_adapters
from .packet_sample import ICMP, OTHER, TCP, UDP, PacketSample
from .utils import extract_ipv4

logger = logging.getLogger(__name__)

try:  # pragma: no cover - exercised only when Scapy is available at runtime
    from scapy.all import AsyncSniffer, conf  # type: ignore
except ImportError:  # pragma: no cover - import guard for optional dependency
    AsyncSniffer = None  # type: ignore[assignment]
    conf = None  # type: ignore[assignment]

try:  # pragma: no cover - exercised only when dpkt is available at runtime
    import dpkt  # type: ignore
except ImportError:  # pragma: no cover - import guard for optional dependency
    dpkt = None  # type: ignore[assignment]


class LiveCaptureError(RuntimeError):
    """Raised when live capture cannot be opened or operated."""


# ----------------------------------------------------------------------
def decode_frame(frame: bytes) -> Optional[PacketSample]:
    """Decode an Ethernet frame into a sample, or ``None`` if it is not IPv4."""

    if dpkt is None:
        return None

    try:
        ethernet = dpkt.ethernet.Ethernet(frame)
    except (dpkt.UnpackError, ValueError):
        logger.debug("Skipping undecodable Ethernet frame", exc_info=True)
        return None

    packet = ethernet.data
    if not isinstance(packet, dpkt.ip.IP):
        return None

    try:
        src_ip = socket.inet_ntoa(packet.src)
        dst_ip = socket.inet_ntoa(packet.dst)
    except OSError:
        logger.debug("Skipping packet with unparsable address", exc_info=True)
        return None

    transport = packet.data
    if isinstance(transport, dpkt.tcp.TCP):
        protocol, src_port, dst_port = TCP, int(transport.sport), int(transport.dport)
    elif isinstance(transport, dpkt.udp.UDP):
        protocol, src_port, dst_port = UDP, int(transport.sport), int(transport.dport)
    elif isinstance(transport, dpkt.icmp.ICMP):
        protocol, src_port, dst_port = ICMP, 0, 0
    else:
        protocol, src_port, dst_port = OTHER, 0, 0

    return PacketSample(
        protocol=protocol,
        src_ip=src_ip,
        src_port=src_port,
        dst_ip=dst_ip,
        dst_port=dst_port,
        bytes=len(frame),
    )


# ----------------------------------------------------------------------
class LiveCapture:
    """Capture frames from a network interface and hand decoded samples on."""

    def __init__(
        self,
        interface: str,
        *,
        bpf_filter: Optional[str] = None,
        decoder: Callable[[bytes], Optional[PacketSample]] = decode_frame,
    ) -> None:
        self.interface = interface
        self.bpf_filter = bpf_filter
        self._decoder = decoder
        self._lock = threading.RLock()
        self._socket = None
        self._sniffer = None
        self._on_sample: Optional[Callable[[PacketSample], None]] = None

    # ------------------------------------------------------------------
    def open(self) -> None:
        """Open the capture socket; failures raise :class:`LiveCaptureError`."""
        if AsyncSniffer is None or conf is None:
            raise LiveCaptureError("Live capture requires the optional dependency 'scapy'")

        with self._lock:
            if self._socket is not None:
                return
            try:
                self._socket = conf.L2listen(iface=self.interface, filter=self.bpf_filter or None)
            except Exception as exc:  # pragma: no cover - open failures depend on system
                raise LiveCaptureError(
                    f"failed to open interface '{self.interface}': {exc}"
                ) from exc

    def start(self, on_sample: Callable[[PacketSample], None]) -> None:
        """Start sniffing; *on_sample* is invoked from the sniffer thread."""
        self.open()

        with self._lock:
            if self._sniffer is not None:
                raise LiveCaptureError("Capture already running")

            self._on_sample = on_sample
            sniffer = AsyncSniffer(
                opened_socket=self._socket,
                prn=self._handle_packet,
                store=False,
            )
            try:
                sniffer.start()
            except Exception as exc:  # pragma: no cover - start failures depend on system
                self._close_socket()
                raise LiveCaptureError(
                    f"failed to start capture on interface '{self.interface}'"
                ) from exc

            self._sniffer = sniffer

        logger.info("Live capture listening on %s", self.interface)

    def stop(self) -> None:
        """Stop sniffing and release the capture socket; safe to call twice."""
        with self._lock:
            sniffer = self._sniffer
            self._sniffer = None
            self._on_sample = None

        if sniffer is not None:
            try:
                sniffer.stop()
            except Exception:  # pragma: no cover - stop failures depend on system
                logger.exception("Failed to stop live capture")

        with self._lock:
            closed = self._close_socket()

        if sniffer is not None or closed:
            logger.info("Live capture stopped on %s", self.interface)

    def is_running(self) -> bool:
        with self._lock:
            return self._sniffer is not None

    # ------------------------------------------------------------------
    def _close_socket(self) -> bool:
        sock = self._socket
        self._socket = None
        if sock is None:
            return False
        try:
            sock.close()
        except Exception:  # pragma: no cover - close failures depend on system
            logger.debug("Failed to close capture socket", exc_info=True)
        return True

    def _handle_packet(self, packet) -> None:
        on_sample = self._on_sample
        if on_sample is None:
            return
        try:
            sample = self._decoder(bytes(packet))
            if sample is not None:
                on_sample(sample)
        except Exception:
            logger.exception("Failed to convert captured packet on %s", self.interface)


# ----------------------------------------------------------------------
@dataclass
class CaptureAvailable:
    """A wire capture that has been opened and is ready to start."""

    capture: LiveCapture
    device: str


@dataclass
class CaptureUnavailable:
    reason: str


CaptureProbe = Union[CaptureAvailable, CaptureUnavailable]


def select_device(
    adapter_hint: Optional[str],
    adapters: Sequence[AdapterInfo],
) -> Optional[str]:
    """Best-effort device choice for *adapter_hint*.

    An IPv4 address inside the hint selects the adapter bound to it; a hint
    equal to an adapter name selects that adapter; otherwise the first
    non-loopback adapter is used, and loopback only when nothing else exists.
    """
    address = extract_ipv4(adapter_hint)
    if address is not None:
        device = find_device_by_address(address, adapters)
        if device is not None:
            return device

    if adapter_hint:
        for adapter in adapters:
            if adapter.name == adapter_hint:
                return adapter.name

    for adapter in adapters:
        if not adapter.is_loopback:
            return adapter.name
    return adapters[0].name if adapters else None


def probe_capture(
    adapter_hint: Optional[str] = None,
    *,
    bpf_filter: Optional[str] = None,
    adapters: Optional[Sequence[AdapterInfo]] = None,
) -> CaptureProbe:
    """Try to open a wire capture, reporting why it is unavailable if not."""

    if AsyncSniffer is None:
        return CaptureUnavailable("scapy is not installed")
    if dpkt is None:
        return CaptureUnavailable("frame decoder dpkt is not installed")

    candidates = list_adapters() if adapters is None else adapters
    device = select_device(adapter_hint, candidates)
    if device is None:
        return CaptureUnavailable("no capture device found")

    capture = LiveCapture(device, bpf_filter=bpf_filter)
    try:
        capture.open()
    except LiveCaptureError as exc:
        return CaptureUnavailable(str(exc))

    return CaptureAvailable(capture=capture, device=device)


__all__ = [
    "LiveCaptureError",
    "LiveCapture",
    "CaptureAvailable",
    "CaptureUnavailable",
    "CaptureProbe",
    "decode_frame",
    "select_device",
    "probe_capture",
]
