"""Shared state and termination bookkeeping for one bridge invocation."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum

from .endpoint import Endpoint

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_SECONDS = 1


class Direction(str, Enum):
    A_TO_B = "a->b"
    B_TO_A = "b->a"


class TerminationReason(str, Enum):
    PEER_EOF = "peer_eof"
    READ_FAILURE = "read_failure"
    WRITE_FAILURE = "write_failure"
    IDLE_TIMEOUT = "idle_timeout"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SessionSummary:
    reason: TerminationReason
    bytes_a_to_b: int
    bytes_b_to_a: int
    duration_seconds: float


def clamp_timeouts(poll_interval_seconds: int, idle_limit_seconds: int) -> tuple[int, int]:
    """
    Normalize watchdog parameters.

    The poll interval is at least one second and the idle limit is at least two
    poll intervals, so the watchdog always observes one full cycle.
    """
    poll_interval = max(MIN_POLL_INTERVAL_SECONDS, int(poll_interval_seconds))
    idle_limit = max(2 * poll_interval, int(idle_limit_seconds))
    return poll_interval, idle_limit


class Session:
    """
    State shared by the two forwarders and the watchdog.

    Everything runs on one event loop, so flag updates happen between await
    points and need no locking. ``close`` is set-once: the first caller records
    the termination reason and closes both endpoints, later calls return
    immediately.
    """

    def __init__(
        self,
        endpoint_a: Endpoint,
        endpoint_b: Endpoint,
        poll_interval_seconds: int,
        idle_limit_seconds: int,
    ) -> None:
        self.endpoint_a = endpoint_a
        self.endpoint_b = endpoint_b
        self.poll_interval, self.idle_limit = clamp_timeouts(
            poll_interval_seconds, idle_limit_seconds
        )
        self.max_missed_polls = self.idle_limit // self.poll_interval
        self.reason: TerminationReason | None = None
        self.started_at = time.monotonic()
        self.ended_at: float | None = None
        self._closed = asyncio.Event()
        self._endpoints_closed = asyncio.Event()
        self._activity = {direction: False for direction in Direction}
        self._bytes = {direction: 0 for direction in Direction}

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def mark_activity(self, direction: Direction) -> None:
        self._activity[direction] = True

    def add_forwarded(self, direction: Direction, nbytes: int) -> None:
        self._bytes[direction] += nbytes

    def consume_activity(self) -> bool:
        """Return True if both directions moved since the last call, then clear both flags."""
        both = all(self._activity.values())
        if both:
            for direction in Direction:
                self._activity[direction] = False
        return both

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait up to ``timeout`` seconds for the session to close; return ``closed``."""
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        return self.closed

    async def close(self, reason: TerminationReason) -> None:
        if self._closed.is_set():
            # Another unit is closing; wait so callers never observe
            # closed=True with endpoints still open.
            await self._endpoints_closed.wait()
            return
        self._closed.set()
        self.reason = reason
        self.ended_at = time.monotonic()
        logger.debug("Session closing: %s", reason.value)
        try:
            results = await asyncio.gather(
                self.endpoint_a.close(), self.endpoint_b.close(), return_exceptions=True
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.debug("Ignoring endpoint close error: %s", result)
        finally:
            self._endpoints_closed.set()

    def summary(self) -> SessionSummary:
        ended_at = self.ended_at if self.ended_at is not None else time.monotonic()
        return SessionSummary(
            reason=self.reason or TerminationReason.CANCELLED,
            bytes_a_to_b=self._bytes[Direction.A_TO_B],
            bytes_b_to_a=self._bytes[Direction.B_TO_A],
            duration_seconds=ended_at - self.started_at,
        )
