# stream/subscriber.py
from __future__ import annotations
import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union
from urllib.parse import quote

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from taskstream.core.config import pubsub_host, pubsub_scheme
from taskstream.core.constants import SUBSCRIBE_PATH
from taskstream.core.logging import get_logger
from taskstream.schemas.events import DecodeFailure, StreamEvent, UnknownEvent
from taskstream.schemas.state import ConnectionState
from taskstream.stream.decoder import decode

logger = get_logger("taskstream.stream.subscriber")

Delivered = Union[StreamEvent, UnknownEvent]
OnEvent = Callable[[Delivered], None]
OnError = Callable[[Exception], None]
Connector = Callable[[str], Awaitable[Any]]


class ConnectError(Exception):
    """Handshake failed, or the subscriber was closed before it opened."""


class ConnectionLost(Exception):
    """The peer closed the socket, or delivery broke, while the subscription was open."""


def subscribe_url(topic: str, host: Optional[str] = None, scheme: Optional[str] = None) -> str:
    path = SUBSCRIBE_PATH.format(topic=quote(topic, safe=""))
    return f"{scheme or pubsub_scheme()}://{host or pubsub_host()}{path}"


class SubscriberClient:
    """Topic-scoped read side of the pub/sub socket.

    Lifecycle is Idle -> Connecting -> Open -> Closed | Errored. ``open()`` only
    returns once the handshake succeeded and raises ``ConnectError`` otherwise.
    With ``on_event`` set, a reader task hands every decoded event to it in wire
    order; without it, ``events()`` gives the same sequence as a single-use async
    iterator. ``close()`` may be called at any point, any number of times.
    """

    def __init__(
        self,
        topic: str,
        on_event: Optional[OnEvent] = None,
        on_error: Optional[OnError] = None,
        host: Optional[str] = None,
        scheme: Optional[str] = None,
        connector: Optional[Connector] = None,
    ):
        self.topic = topic
        self.url = subscribe_url(topic, host, scheme)
        self.state = ConnectionState.IDLE
        self._on_event = on_event
        self._on_error = on_error
        self._connector = connector or ws_connect
        self._ws: Any = None
        self._handshake: Optional[asyncio.Task] = None
        self._reader: Optional[asyncio.Task] = None
        self._closing = False
        self._consumed = False

    @property
    def closed(self) -> bool:
        return self._closing

    async def __aenter__(self) -> "SubscriberClient":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _dial(self) -> Any:
        return await self._connector(self.url)

    async def open(self) -> "SubscriberClient":
        if self._closing:
            raise ConnectError(f"subscriber for {self.topic} closed before open")
        if self.state is not ConnectionState.IDLE:
            raise ConnectError(f"subscriber for {self.topic} already used (state={self.state.value})")

        self.state = ConnectionState.CONNECTING
        logger.info("WS_CONNECT topic=%s url=%s", self.topic, self.url)
        self._handshake = asyncio.create_task(self._dial())
        try:
            ws = await self._handshake
        except asyncio.CancelledError:
            self.state = ConnectionState.CLOSED
            if not self._closing:
                raise
            raise ConnectError(f"subscriber for {self.topic} closed before open") from None
        except Exception as e:
            self.state = ConnectionState.ERRORED
            logger.error("WS_CONNECT_FAIL topic=%s err=%s", self.topic, e)
            raise ConnectError(f"could not subscribe to {self.topic}: {e}") from e
        finally:
            self._handshake = None

        if self._closing:
            # close() landed after the handshake finished but before we resumed
            await ws.close()
            self.state = ConnectionState.CLOSED
            raise ConnectError(f"subscriber for {self.topic} closed before open")

        self._ws = ws
        self.state = ConnectionState.OPEN
        logger.info("WS_OPEN topic=%s", self.topic)
        if self._on_event is not None:
            self._reader = asyncio.create_task(self._pump())
        return self

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True

        if self.state is ConnectionState.CONNECTING:
            # open() settles the pending handshake with ConnectError
            if self._handshake is not None:
                self._handshake.cancel()
            return

        if self.state is not ConnectionState.ERRORED:
            self.state = ConnectionState.CLOSED
        logger.info("WS_CLOSE topic=%s", self.topic)

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.wait([reader])
        if self._ws is not None:
            await self._ws.close()

    def events(self) -> AsyncIterator[Delivered]:
        if self.state is not ConnectionState.OPEN or self._ws is None:
            raise RuntimeError(f"subscriber for {self.topic} is not open (state={self.state.value})")
        if self._consumed:
            raise RuntimeError(f"events for {self.topic} are already being consumed")
        self._consumed = True
        return self._iter_events(self._ws)

    async def _iter_events(self, ws: Any) -> AsyncIterator[Delivered]:
        cause: Optional[BaseException] = None
        try:
            async for frame in ws:
                if self._closing:
                    return
                ev = decode(frame)
                if isinstance(ev, DecodeFailure):
                    continue
                yield ev
        except ConnectionClosed as e:
            cause = e

        if self._closing:
            return
        self.state = ConnectionState.ERRORED
        logger.warning("WS_LOST topic=%s cause=%s", self.topic, cause)
        raise ConnectionLost(f"subscription to {self.topic} closed unexpectedly") from cause

    async def _pump(self) -> None:
        try:
            async for ev in self.events():
                if self._closing:
                    return
                self._on_event(ev)
        except ConnectionLost as e:
            self._report(e)
        except Exception as e:
            logger.exception("WS_DELIVERY_FAIL topic=%s", self.topic)
            self.state = ConnectionState.ERRORED
            self._report(ConnectionLost(f"delivery for {self.topic} failed: {e}"))

    def _report(self, err: Exception) -> None:
        if self._on_error is None:
            logger.error("WS_ERROR topic=%s err=%s", self.topic, err)
            return
        self._on_error(err)


async def subscriber_client(
    topic: str,
    on_event: OnEvent,
    on_error: Optional[OnError] = None,
    host: Optional[str] = None,
    scheme: Optional[str] = None,
    connector: Optional[Connector] = None,
) -> SubscriberClient:
    client = SubscriberClient(topic, on_event, on_error, host=host, scheme=scheme, connector=connector)
    return await client.open()
