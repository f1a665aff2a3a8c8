"""Shared fakes for the socket transport and the task API."""

import asyncio

import pytest
from websockets.exceptions import ConnectionClosedError

_PEER_CLOSED = object()
_DROPPED = object()


class FakeSocket:
    """Stands in for a websockets ClientConnection: iterate frames, send, close."""

    def __init__(self):
        self.frames = asyncio.Queue()
        self.sent = []
        self.closed = False

    def feed(self, *frames):
        for f in frames:
            self.frames.put_nowait(f)

    def finish(self):
        """Peer closes cleanly."""
        self.frames.put_nowait(_PEER_CLOSED)

    def drop(self):
        """Peer goes away abnormally."""
        self.frames.put_nowait(_DROPPED)

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.frames.put_nowait(_PEER_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.frames.get()
        if item is _PEER_CLOSED:
            raise StopAsyncIteration
        if item is _DROPPED:
            raise ConnectionClosedError(None, None)
        return item


class FakeConnector:
    """Hands out a fresh FakeSocket per dial; can fail or hold the handshake open."""

    def __init__(self):
        self.urls = []
        self.sockets = []
        self.error = None
        self.gate = None

    @property
    def last(self):
        return self.sockets[-1]

    async def __call__(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        sock = FakeSocket()
        self.sockets.append(sock)
        return sock


class FakeApi:
    def __init__(self, task_id="t1"):
        self.task_id = task_id
        self.calls = []
        self.cancels = []
        self.error = None
        self.cancel_error = None
        self.gate = None

    async def submit_message(self, message, agent_id):
        self.calls.append((message, agent_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.task_id

    async def cancel_task(self, agent_id):
        self.cancels.append(agent_id)
        if self.cancel_error is not None:
            raise self.cancel_error
        return self.task_id


async def settle(rounds: int = 20) -> None:
    """Let reader tasks drain whatever frames are queued."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def settle_loop():
    return settle
