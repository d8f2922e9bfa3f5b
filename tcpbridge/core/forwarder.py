"""Unidirectional copy loop."""

from __future__ import annotations

import asyncio
import logging

from .endpoint import Endpoint
from .session import Direction, Session, TerminationReason

logger = logging.getLogger(__name__)

BUFFER_SIZE = 16 * 1024

_IO_ERRORS = (OSError, asyncio.IncompleteReadError)


async def forward(
    source: Endpoint,
    destination: Endpoint,
    session: Session,
    direction: Direction,
) -> None:
    """
    Copy bytes from source to destination until EOF, an I/O error or session close.

    Whatever ends the loop, the whole session is closed on the way out so the
    opposite forwarder, blocked on its own read, is released by its endpoint
    closing.
    """
    reason = TerminationReason.PEER_EOF
    try:
        while not session.closed:
            try:
                data = await source.read(BUFFER_SIZE)
            except _IO_ERRORS as exc:
                logger.debug("Read %s stopped: %s", direction.value, exc)
                reason = TerminationReason.READ_FAILURE
                break
            # A read that completes after close is dropped, never written.
            if not data or session.closed:
                break
            session.mark_activity(direction)
            try:
                await destination.write(data)
            except _IO_ERRORS as exc:
                logger.debug("Write %s stopped: %s", direction.value, exc)
                reason = TerminationReason.WRITE_FAILURE
                break
            session.add_forwarded(direction, len(data))
    except asyncio.CancelledError:
        reason = TerminationReason.CANCELLED
        raise
    finally:
        await session.close(reason)
