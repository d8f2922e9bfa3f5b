"""Bridge supervisor: runs two forwarders and the idle watchdog."""

from __future__ import annotations

import asyncio
import logging
import socket

from .endpoint import Endpoint, StreamEndpoint
from .forwarder import forward
from .session import Direction, Session, SessionSummary, TerminationReason

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1
DEFAULT_IDLE_LIMIT_SECONDS = 60


class BridgeSession:
    """
    One bridge invocation between two already-connected endpoints.

    ``run`` starts a forwarder per direction, then polls for activity every
    ``poll_interval`` seconds. A poll that sees traffic in both directions
    since the previous one resets the missed-poll counter; otherwise the
    counter grows, and once it exceeds ``idle_limit // poll_interval`` the
    session is closed as idle. Traffic in only one direction still counts as
    a miss.

    ``run`` returns only after the watchdog has stopped and both forwarders
    have finished, at which point both endpoints are closed.
    """

    def __init__(
        self,
        endpoint_a: Endpoint,
        endpoint_b: Endpoint,
        poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
        idle_limit_seconds: int = DEFAULT_IDLE_LIMIT_SECONDS,
    ) -> None:
        self.session = Session(endpoint_a, endpoint_b, poll_interval_seconds, idle_limit_seconds)

    async def run(self) -> SessionSummary:
        session = self.session
        forwarders = [
            asyncio.create_task(
                forward(session.endpoint_a, session.endpoint_b, session, Direction.A_TO_B)
            ),
            asyncio.create_task(
                forward(session.endpoint_b, session.endpoint_a, session, Direction.B_TO_A)
            ),
        ]
        logger.debug(
            "Bridge started (poll=%ss idle=%ss max_missed=%s)",
            session.poll_interval,
            session.idle_limit,
            session.max_missed_polls,
        )
        try:
            await self._watch()
        except asyncio.CancelledError:
            await session.close(TerminationReason.CANCELLED)
            raise
        finally:
            await asyncio.gather(*forwarders, return_exceptions=True)

        summary = session.summary()
        logger.debug(
            "Bridge ended: %s (a->b=%s bytes, b->a=%s bytes, %.1fs)",
            summary.reason.value,
            summary.bytes_a_to_b,
            summary.bytes_b_to_a,
            summary.duration_seconds,
        )
        return summary

    async def _watch(self) -> None:
        session = self.session
        missed = 0
        while True:
            if await session.wait_closed(timeout=session.poll_interval):
                return
            if session.consume_activity():
                missed = 0
                continue
            missed += 1
            if missed > session.max_missed_polls:
                logger.info(
                    "Bridge idle for %s polls of %ss; closing",
                    missed,
                    session.poll_interval,
                )
                await session.close(TerminationReason.IDLE_TIMEOUT)
                return


async def bridge(
    endpoint_a: Endpoint,
    endpoint_b: Endpoint,
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    idle_limit_seconds: int = DEFAULT_IDLE_LIMIT_SECONDS,
) -> None:
    """Forward bytes both ways between two endpoints until the session ends."""
    await BridgeSession(endpoint_a, endpoint_b, poll_interval_seconds, idle_limit_seconds).run()


async def bridge_streams(
    reader_a: asyncio.StreamReader,
    writer_a: asyncio.StreamWriter,
    reader_b: asyncio.StreamReader,
    writer_b: asyncio.StreamWriter,
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    idle_limit_seconds: int = DEFAULT_IDLE_LIMIT_SECONDS,
) -> None:
    await bridge(
        StreamEndpoint(reader_a, writer_a),
        StreamEndpoint(reader_b, writer_b),
        poll_interval_seconds,
        idle_limit_seconds,
    )


async def bridge_sockets(
    sock_a: socket.socket,
    sock_b: socket.socket,
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    idle_limit_seconds: int = DEFAULT_IDLE_LIMIT_SECONDS,
) -> None:
    """Bridge two connected sockets; both are closed when this returns."""
    endpoint_a = await StreamEndpoint.from_socket(sock_a)
    try:
        endpoint_b = await StreamEndpoint.from_socket(sock_b)
    except Exception:
        await endpoint_a.close()
        sock_b.close()
        raise
    await bridge(endpoint_a, endpoint_b, poll_interval_seconds, idle_limit_seconds)
