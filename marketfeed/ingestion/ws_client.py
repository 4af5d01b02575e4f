"""Exchange websocket client: the connection lifecycle around the dispatch engine.

Owns the transport, feeds every inbound frame through the exchange's wire
format and the dispatcher, and exposes subscribe / ping for outbound requests.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

import orjson
import structlog
from pydantic import ValidationError

from marketfeed.config import AppConfig, get_config
from marketfeed.errors import (
    NotConnectedError,
    ProtocolError,
    SubscriptionValidationError,
    TransportError,
)
from marketfeed.ingestion.channel_registry import ChannelRegistry
from marketfeed.ingestion.dispatcher import Dispatcher
from marketfeed.ingestion.request_ids import RequestIdGenerator
from marketfeed.ingestion.transport import Transport, WebsocketsTransport
from marketfeed.ingestion.wire import WireFormat, get_wire_format
from marketfeed.ingestion.ws_router import Handler, HandlerKey, HandlerTable, build_default_handlers
from marketfeed.models import ChannelType, EventKind, SubscriptionRequest

logger = structlog.get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    ERRORED = "errored"
    CLOSED = "closed"


class FeedClient:
    """
    Streaming market-data client for one exchange connection.

    A client is single-use: once closed, its registry and handlers are
    released and it cannot be reopened. There is no unsubscribe; closing the
    connection is how a stream is stopped.
    """

    def __init__(
        self,
        wire_format: WireFormat | str | None = None,
        *,
        config: AppConfig | None = None,
        transport: Transport | None = None,
        url: str | None = None,
        on_open: Callable[[], Any] | None = None,
        on_close: Callable[[str], Any] | None = None,
        handlers: Mapping[str | HandlerKey, Handler | None] | None = None,
        log: Any = None,
    ) -> None:
        self._config = config if config is not None else get_config()
        if wire_format is None:
            wire_format = self._config.exchange.exchange
        self._wire = get_wire_format(wire_format) if isinstance(wire_format, str) else wire_format
        self._url = url or self._config.exchange.url_for(self._wire.name)

        # Per-client logger so several clients can run in one process.
        self._log = log if log is not None else logger.bind(exchange=self._wire.name)
        self._transport: Transport = (
            transport if transport is not None else WebsocketsTransport(self._config.tuning)
        )

        self._on_open = on_open
        self._on_close = on_close

        self._ids = RequestIdGenerator()
        self._registry = ChannelRegistry(log=self._log)
        self._handlers = HandlerTable(build_default_handlers(self._log))
        for name, callback in (handlers or {}).items():
            self._handlers.set(name, callback)
        self._dispatcher = Dispatcher(
            self._handlers,
            self._registry,
            handler_timeout=self._config.tuning.handler_timeout,
            log=self._log,
        )

        self._outbound_lock = asyncio.Lock()
        self.state = ConnectionState.CONNECTING
        self.close_reason: str | None = None
        self._reading = False
        self._closing = False
        self._close_notified = False

        # Stats
        self._msg_counts: dict[str, int] = {}
        self._connect_time: float = 0
        self._last_stats_time: float = 0

    @property
    def exchange(self) -> str:
        return self._wire.name

    @property
    def wire_format(self) -> WireFormat:
        return self._wire

    @property
    def registry(self) -> ChannelRegistry:
        return self._registry

    @property
    def handlers(self) -> HandlerTable:
        return self._handlers

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def __aenter__(self) -> FeedClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ── Connection lifecycle ──────────────────────────────────────────

    async def connect(self) -> None:
        """Open the transport and move to ``open``."""
        if self.state is not ConnectionState.CONNECTING:
            raise NotConnectedError(f"client is {self.state.value}; create a new client to reconnect")

        try:
            await self._transport.open(self._url)
        except TransportError as e:
            self._log.error("websocket_connection_error", url=self._url, error=str(e))
            await self._handle_close("connect_failed")
            raise

        self.state = ConnectionState.OPEN
        self._connect_time = time.time()
        self._log.info("websocket_connected", url=self._url)
        await self._notify("on_open", self._on_open)

    async def run(self) -> None:
        """Read frames until the transport closes, then release all state."""
        if self.state is ConnectionState.CONNECTING:
            await self.connect()
        if self.state is not ConnectionState.OPEN:
            return

        reason = "transport_error"
        self._reading = True
        try:
            await self._message_loop()
            reason = "client_close" if self._closing else "remote_close"
        except TransportError as e:
            self.state = ConnectionState.ERRORED
            reason = "transport_error"
            self._log.warning("websocket_disconnected", error=str(e))
        except asyncio.CancelledError:
            reason = "cancelled"
            raise
        finally:
            self._reading = False
            await self._handle_close(reason)

    async def close(self) -> None:
        """Close the connection. Handlers still running are cancelled."""
        if self.state is ConnectionState.CLOSED:
            return
        self._closing = True
        try:
            await self._transport.close()
        except Exception:
            self._log.exception("websocket_close_error")
        if not self._reading:
            await self._handle_close("client_close")

    async def _handle_close(self, reason: str) -> None:
        if self._close_notified:
            return
        self._close_notified = True

        self.close_reason = reason
        await self._dispatcher.shutdown()
        self._registry.clear()
        self._handlers.clear()
        self.state = ConnectionState.CLOSED
        self._log.info("websocket_closed", reason=reason, messages=sum(self._msg_counts.values()))
        await self._notify("on_close", self._on_close, reason)

    async def _notify(self, name: str, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._log.exception("lifecycle_callback_error", callback=name)

    # ── Outbound requests ─────────────────────────────────────────────

    async def subscribe(
        self,
        symbols: str | Iterable[str],
        channel_type: str | ChannelType,
        params: Mapping[str, Any] | None = None,
        handler: Handler | None = None,
    ) -> int:
        """Subscribe to a public channel. Returns the request id.

        ``handler`` is called as ``handler(symbol, interval, payload)`` for
        every update and replaces any handler already set for the channel.
        A plain function runs in a worker thread; use ``async def`` to run on
        the event loop.
        """
        ctype = self._wire.validate_channel(channel_type)
        if isinstance(symbols, str):
            symbols = [symbols]
        try:
            request = SubscriptionRequest(
                symbols=tuple(self._wire.normalize_symbol(s) for s in symbols),
                channel_type=ctype,
                params=dict(params or {}),
            )
        except ValidationError as e:
            raise SubscriptionValidationError(f"invalid subscription: {e}") from e

        self._ensure_open("subscribe")
        async with self._outbound_lock:
            request_id = self._ids.next()
            if handler is not None:
                self._handlers.set(ctype, handler)
            for symbol in request.symbols:
                self._registry.register_pending(
                    symbol,
                    ctype,
                    request_id=request_id,
                    channel_id=self._wire.tentative_channel_id(symbol, request),
                    interval=request.interval,
                )
            await self._send_message(self._wire.encode_subscribe(request, request_id), "subscribe")

        self._log.info(
            "subscription_requested",
            reqid=request_id,
            channel=ctype.value,
            symbols=list(request.symbols),
        )
        return request_id

    async def ping(self, handler: Handler | None = None) -> int:
        """Send a ping. ``handler``, if given, becomes the pong handler."""
        self._ensure_open("ping")
        async with self._outbound_lock:
            if handler is not None:
                self._handlers.set(EventKind.PONG, handler)
            request_id = self._ids.next()
            self._dispatcher.expect_pong(request_id)
            await self._send_message(self._wire.encode_ping(request_id), "ping")
        return request_id

    def set_handler(self, name: str | HandlerKey, callback: Handler | None) -> None:
        self._handlers.set(name, callback)

    def _ensure_open(self, operation: str) -> None:
        if self.state is not ConnectionState.OPEN:
            raise NotConnectedError(f"cannot {operation}: connection is {self.state.value}")
        if self._closing:
            raise NotConnectedError(f"cannot {operation}: connection is closing")

    async def _send_message(self, data: dict[str, Any], request: str) -> bool:
        text = orjson.dumps(data).decode()
        if await self._transport.send(text):
            self._log.info("message_sent", request=request)
            return True
        self._log.error("message_send_failed", request=request)
        return False

    # ── Message processing ────────────────────────────────────────────

    async def _message_loop(self) -> None:
        """Main message processing loop."""
        self._last_stats_time = time.time()

        async for raw in self._transport.frames():
            self.process_frame(raw)

            now = time.time()
            if now - self._last_stats_time >= self._config.tuning.stats_interval:
                self._log_stats()
                self._last_stats_time = now

    def process_frame(self, raw: str | bytes) -> None:
        """Decode one frame and hand it to the dispatcher."""
        try:
            msg = orjson.loads(raw)
        except orjson.JSONDecodeError:
            self._log.error("invalid_json", raw=raw[:200] if isinstance(raw, str) else str(raw)[:200])
            return

        try:
            decoded = self._wire.decode(msg)
        except ProtocolError as e:
            self._count(EventKind.ERROR.value)
            self._dispatcher.dispatch_error(e)
            return
        except Exception:
            self._count("invalid")
            self._log.exception("message_decode_error", raw=str(msg)[:200])
            return

        self._count(decoded.kind)
        try:
            self._dispatcher.dispatch(decoded)
        except Exception:
            self._log.exception("message_dispatch_error", kind=decoded.kind, raw=str(msg)[:200])

    def _count(self, kind: str) -> None:
        self._msg_counts[kind] = self._msg_counts.get(kind, 0) + 1

    def stats(self) -> dict[str, Any]:
        uptime = time.time() - self._connect_time if self._connect_time else 0
        return {
            "state": self.state.value,
            "uptime_seconds": int(uptime),
            "total_messages": sum(self._msg_counts.values()),
            "by_kind": dict(self._msg_counts),
            "channels": len(self._registry),
            "pending_handlers": self._dispatcher.pending,
        }

    def _log_stats(self) -> None:
        """Log message rate statistics."""
        self._log.info("ws_stats", **self.stats())
        self._msg_counts.clear()
