# stream/publisher.py
from __future__ import annotations
import json
from typing import Any, Dict, Optional, Union
from urllib.parse import quote, urlencode

from websockets.asyncio.client import connect as ws_connect

from taskstream.core.config import pubsub_api_key, pubsub_host, pubsub_scheme
from taskstream.core.constants import PUBLISH_PATH
from taskstream.core.logging import get_logger
from taskstream.schemas.events import StreamEvent
from taskstream.schemas.state import ConnectionState
from taskstream.stream.subscriber import ConnectError, Connector

logger = get_logger("taskstream.stream.publisher")


def publish_url(topic: str, key: Optional[str] = None, host: Optional[str] = None, scheme: Optional[str] = None) -> str:
    path = PUBLISH_PATH.format(topic=quote(topic, safe=""))
    query = urlencode({"key": pubsub_api_key() if key is None else key})
    return f"{scheme or pubsub_scheme()}://{host or pubsub_host()}{path}?{query}"


class PublisherClient:
    """Write side of the pub/sub socket: one JSON event per text frame."""

    def __init__(
        self,
        topic: str,
        key: Optional[str] = None,
        host: Optional[str] = None,
        scheme: Optional[str] = None,
        connector: Optional[Connector] = None,
    ):
        self.topic = topic
        self.url = publish_url(topic, key, host, scheme)
        self.state = ConnectionState.IDLE
        self._connector = connector or ws_connect
        self._ws: Any = None

    async def open(self) -> "PublisherClient":
        if self.state is not ConnectionState.IDLE:
            raise ConnectError(f"publisher for {self.topic} already used (state={self.state.value})")
        self.state = ConnectionState.CONNECTING
        try:
            self._ws = await self._connector(self.url)
        except Exception as e:
            self.state = ConnectionState.ERRORED
            logger.error("WS_PUBLISH_CONNECT_FAIL topic=%s err=%s", self.topic, e)
            raise ConnectError(f"could not publish to {self.topic}: {e}") from e
        self.state = ConnectionState.OPEN
        return self

    async def publish(self, event: Union[StreamEvent, Dict[str, Any]]) -> None:
        if self.state is not ConnectionState.OPEN:
            raise ConnectError(f"publisher for {self.topic} is not open (state={self.state.value})")
        payload = event if isinstance(event, dict) else event.to_wire()
        await self._ws.send(json.dumps(payload, ensure_ascii=False))

    async def close(self) -> None:
        if self.state is not ConnectionState.OPEN:
            if self.state is ConnectionState.IDLE:
                self.state = ConnectionState.CLOSED
            return
        self.state = ConnectionState.CLOSED
        await self._ws.close()

    async def __aenter__(self) -> "PublisherClient":
        return await self.open()

    async def __aexit__(self, *exc) -> None:
        await self.close()


async def publisher_client(
    topic: str,
    key: Optional[str] = None,
    host: Optional[str] = None,
    scheme: Optional[str] = None,
    connector: Optional[Connector] = None,
) -> PublisherClient:
    return await PublisherClient(topic, key=key, host=host, scheme=scheme, connector=connector).open()
