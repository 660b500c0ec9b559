"""Command-line entry point for the telemetry service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .capture_source import MODES, SIMULATE
from .config import DEFAULT_HOST, DEFAULT_PORT, ServiceConfig
from .scheduler import TICK_INTERVAL_S
from .service import TelemetryService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Stream live or simulated network flow telemetry to WebSocket viewers.",
    )
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Address to listen on (default: {DEFAULT_HOST}).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"WebSocket port to listen on (default: {DEFAULT_PORT}).",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default=SIMULATE,
        help="Initial capture mode (default: simulate).",
    )
    parser.add_argument(
        "--adapter",
        metavar="NAME_OR_IP",
        help="Adapter name, or any text containing its IPv4 address, to capture on.",
    )
    parser.add_argument(
        "--filter",
        dest="bpf_filter",
        metavar="BPF",
        help="BPF filter applied to live capture.",
    )
    parser.add_argument(
        "--tick-interval",
        type=float,
        default=TICK_INTERVAL_S,
        metavar="SECONDS",
        help=f"Aggregation period in seconds (default: {TICK_INTERVAL_S:g}).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the synthetic traffic generator.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Log level for diagnostic output.",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServiceConfig:
    return ServiceConfig(
        host=args.host,
        port=args.port,
        mode=args.mode,
        adapter_hint=args.adapter,
        bpf_filter=args.bpf_filter,
        tick_interval_s=args.tick_interval,
        seed=args.seed,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    try:
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    service = TelemetryService(config)
    try:
        asyncio.run(service.run())
    except OSError as exc:
        logger.error("Could not listen on %s:%s: %s", config.host, config.port, exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
