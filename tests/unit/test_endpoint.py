import asyncio

import pytest

from tcpbridge.core import StreamEndpoint


@pytest.fixture
def anyio_backend():
    return "asyncio"


class _FakeTransport:
    def __init__(self) -> None:
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True


class _StalledWriter:
    """Writer whose graceful close never completes, like a peer that stopped reading."""

    def __init__(self) -> None:
        self.transport = _FakeTransport()
        self.close_calls = 0
        self._never = asyncio.Event()

    def get_extra_info(self, name: str):
        return ("127.0.0.1", 9)

    def close(self) -> None:
        self.close_calls += 1

    async def wait_closed(self) -> None:
        await self._never.wait()


@pytest.mark.anyio
async def test_close_aborts_when_flush_stalls(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("tcpbridge.core.endpoint.CLOSE_GRACE_SECONDS", 0.01)
    writer = _StalledWriter()
    endpoint = StreamEndpoint(asyncio.StreamReader(), writer)

    await asyncio.wait_for(endpoint.close(), timeout=1.0)

    assert writer.close_calls == 1
    assert writer.transport.aborted is True


@pytest.mark.anyio
async def test_cancelled_close_still_aborts_transport() -> None:
    writer = _StalledWriter()
    endpoint = StreamEndpoint(asyncio.StreamReader(), writer)

    task = asyncio.create_task(endpoint.close())
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert writer.transport.aborted is True
