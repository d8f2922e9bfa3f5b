"""Endpoint abstraction the bridge reads from and writes to."""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Protocol

logger = logging.getLogger(__name__)

CLOSE_GRACE_SECONDS = 2.0


class Endpoint(Protocol):
    async def read(self, n: int) -> bytes: ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


class StreamEndpoint:
    """Adapter over an asyncio ``StreamReader``/``StreamWriter`` pair."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        label: str | None = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.label = label or str(writer.get_extra_info("peername"))

    @classmethod
    async def from_socket(cls, sock: socket.socket, label: str | None = None) -> "StreamEndpoint":
        reader, writer = await asyncio.open_connection(sock=sock)
        return cls(reader, writer, label=label)

    async def read(self, n: int) -> bytes:
        return await self.reader.read(n)

    async def write(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        # Closing the transport feeds EOF to our own reader, which unblocks
        # a forwarder waiting in read(). A graceful close waits for the write
        # buffer to flush, so a peer that stopped reading gets an abort.
        try:
            self.writer.close()
            await asyncio.wait_for(self.writer.wait_closed(), timeout=CLOSE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.debug("Endpoint %s did not flush in time; aborting", self.label)
            self.writer.transport.abort()
        except asyncio.CancelledError:
            self.writer.transport.abort()
            raise
        except Exception as exc:  # noqa: BLE001 - already closed or reset
            logger.debug("Endpoint %s close raised: %s", self.label, exc)

    def __repr__(self) -> str:
        return f"StreamEndpoint({self.label})"
