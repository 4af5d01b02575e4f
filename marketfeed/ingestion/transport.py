"""Websocket transport used by FeedClient."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

import structlog
import websockets
import websockets.asyncio.client
from websockets.exceptions import ConnectionClosedError

from marketfeed.config import TuningConfig
from marketfeed.errors import TransportError

logger = structlog.get_logger(__name__)


class Transport(Protocol):
    """Delivers opaque text frames and sends text. One connection per instance."""

    async def open(self, url: str) -> None: ...

    async def send(self, text: str) -> bool: ...

    def frames(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...


class WebsocketsTransport:
    """Transport backed by ``websockets.asyncio.client``."""

    def __init__(self, tuning: TuningConfig) -> None:
        self._tuning = tuning
        self._ws: websockets.asyncio.client.ClientConnection | None = None
        self._url: str | None = None

    async def open(self, url: str) -> None:
        try:
            self._ws = await websockets.asyncio.client.connect(
                url,
                ping_interval=self._tuning.ws_ping_interval,
                ping_timeout=self._tuning.ws_pong_timeout,
                open_timeout=self._tuning.ws_open_timeout,
                max_size=self._tuning.ws_max_message_size,
            )
        except websockets.InvalidHandshake as e:
            raise TransportError(f"websocket handshake failed: {e}") from e
        except (OSError, TimeoutError) as e:
            raise TransportError(f"websocket connection failed: {e}") from e
        self._url = url

    async def send(self, text: str) -> bool:
        if self._ws is None:
            return False
        try:
            await self._ws.send(text)
        except websockets.ConnectionClosed as e:
            logger.warning("send_on_closed_socket", url=self._url, code=e.rcvd.code if e.rcvd else None)
            return False
        return True

    async def frames(self) -> AsyncIterator[str | bytes]:
        if self._ws is None:
            raise TransportError("transport is not open")
        try:
            async for raw in self._ws:
                yield raw
        except ConnectionClosedError as e:
            code = e.rcvd.code if e.rcvd else None
            reason = e.rcvd.reason if e.rcvd else ""
            raise TransportError(f"websocket closed abnormally (code={code}, reason={reason!r})") from e

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
