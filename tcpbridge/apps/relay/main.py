"""Entry point helpers for running the relay servers."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional, Sequence

from tcpbridge.common.logging import setup_logging
from tcpbridge.common.monitoring import start_metrics_server
from tcpbridge.errors import RelayError

from .config import RelaySettings, format_forward_rule, parse_forward_rules
from .server import RelayServer

logger = logging.getLogger("tcpbridge.relay")


def create_servers(settings: RelaySettings) -> List[RelayServer]:
    """Instantiate one relay server per configured forward rule."""
    return [
        RelayServer(
            rule,
            poll_interval_seconds=settings.BRIDGE_POLL_INTERVAL_SECONDS,
            idle_limit_seconds=settings.BRIDGE_IDLE_LIMIT_SECONDS,
            connect_timeout_seconds=settings.RELAY_CONNECT_TIMEOUT_SECONDS,
        )
        for rule in settings.forward_rules
    ]


async def run_relays(settings: RelaySettings) -> None:
    """Run every configured relay concurrently until cancelled."""
    servers = create_servers(settings)
    if not servers:
        raise RelayError("No forward rules configured; set RELAY_FORWARDS or pass --forward")
    logger.info(
        "Starting %s relay(s). Poll interval: %ss. Idle limit: %ss.",
        len(servers),
        settings.BRIDGE_POLL_INTERVAL_SECONDS,
        settings.BRIDGE_IDLE_LIMIT_SECONDS,
    )
    await asyncio.gather(*(server.start() for server in servers))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Relay TCP connections to fixed targets with an idle timeout."
    )
    parser.add_argument(
        "--forward",
        action="append",
        default=[],
        metavar="[HOST:]PORT=TARGET:PORT",
        help="Forward rule; may be repeated. Adds to RELAY_FORWARDS.",
    )
    parser.add_argument("--listen-host", help="Default listen host for rules without one.")
    parser.add_argument("--poll-interval", type=int, help="Watchdog poll interval in seconds.")
    parser.add_argument("--idle-limit", type=int, help="Idle limit in seconds.")
    parser.add_argument("--connect-timeout", type=float, help="Target dial timeout in seconds.")
    parser.add_argument("--metrics-port", type=int, help="Prometheus port; 0 disables.")
    parser.add_argument("--log-level", help="Root log level.")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None) -> RelaySettings:
    """Environment settings with command line flags applied on top."""
    args = _build_parser().parse_args(argv)
    overrides: dict[str, object] = {}
    if args.listen_host:
        overrides["RELAY_LISTEN_HOST"] = args.listen_host
    if args.poll_interval is not None:
        overrides["BRIDGE_POLL_INTERVAL_SECONDS"] = args.poll_interval
    if args.idle_limit is not None:
        overrides["BRIDGE_IDLE_LIMIT_SECONDS"] = args.idle_limit
    if args.connect_timeout is not None:
        overrides["RELAY_CONNECT_TIMEOUT_SECONDS"] = args.connect_timeout
    if args.metrics_port is not None:
        overrides["RELAY_METRICS_PORT"] = args.metrics_port
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level
    settings = RelaySettings(**overrides)
    if args.forward:
        rules = settings.forward_rules + parse_forward_rules(
            ",".join(args.forward), settings.RELAY_LISTEN_HOST
        )
        settings = settings.model_copy(
            update={"RELAY_FORWARDS": ",".join(format_forward_rule(rule) for rule in rules)}
        )
    return settings


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = load_settings(argv)
    setup_logging(
        service_name=settings.OTEL_SERVICE_NAME,
        level=settings.LOG_LEVEL,
        log_dir=settings.LOG_DIR,
        log_file=settings.LOG_FILE,
    )
    if settings.RELAY_METRICS_PORT:
        start_metrics_server(settings.RELAY_METRICS_PORT)
    try:
        asyncio.run(run_relays(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
