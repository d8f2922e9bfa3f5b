"""TCP relay: accept a client, dial its target and bridge the two connections."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from tcpbridge.common.monitoring import BridgeMetrics, bridge_metrics
from tcpbridge.core import BridgeSession, SessionSummary, StreamEndpoint
from tcpbridge.errors import UpstreamConnectError

from .config import ForwardRule

logger = logging.getLogger(__name__)


class RelayServer:
    """Forwards every accepted connection on one listen address to one target."""

    def __init__(
        self,
        rule: ForwardRule,
        *,
        poll_interval_seconds: int = 1,
        idle_limit_seconds: int = 60,
        connect_timeout_seconds: float = 10.0,
        metrics: Optional[BridgeMetrics] = None,
    ) -> None:
        self.rule = rule
        self.poll_interval_seconds = poll_interval_seconds
        self.idle_limit_seconds = idle_limit_seconds
        self.connect_timeout_seconds = connect_timeout_seconds
        self.metrics = metrics or bridge_metrics()

    @asynccontextmanager
    async def serve(self) -> AsyncIterator[asyncio.Server]:
        server = await asyncio.start_server(
            self._handle_client, host=self.rule.listen_host, port=self.rule.listen_port
        )
        sockname = server.sockets[0].getsockname() if server.sockets else None
        logger.info(
            "Relay listening on %s, forwarding to %s:%s",
            sockname,
            self.rule.target_host,
            self.rule.target_port,
        )
        async with server:
            yield server

    async def start(self) -> None:
        async with self.serve() as server:
            await server.serve_forever()

    async def _open_upstream(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            return await asyncio.wait_for(
                asyncio.open_connection(self.rule.target_host, self.rule.target_port),
                timeout=self.connect_timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise UpstreamConnectError(
                f"Cannot reach {self.rule.target_host}:{self.rule.target_port}: {exc!r}"
            ) from exc

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        client = StreamEndpoint(reader, writer)
        logger.info("Relay client connected: %s", client.label)
        try:
            upstream_reader, upstream_writer = await self._open_upstream()
        except UpstreamConnectError as exc:
            self.metrics.upstream_connect_failures.inc()
            logger.error("Relay %s: %s", self.rule, exc)
            await client.close()
            return

        upstream = StreamEndpoint(upstream_reader, upstream_writer)
        summary: SessionSummary | None = None
        self.metrics.session_started()
        try:
            summary = await BridgeSession(
                client,
                upstream,
                self.poll_interval_seconds,
                self.idle_limit_seconds,
            ).run()
        finally:
            self.metrics.session_finished(summary)
        logger.info(
            "Relay client disconnected: %s (%s, sent=%s received=%s, %.1fs)",
            client.label,
            summary.reason.value,
            summary.bytes_a_to_b,
            summary.bytes_b_to_a,
            summary.duration_seconds,
        )
