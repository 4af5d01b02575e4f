"""Routes decoded messages to registered handlers without blocking the reader."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

import structlog

from marketfeed.errors import ProtocolError
from marketfeed.ingestion.channel_registry import ChannelRegistry
from marketfeed.ingestion.ws_router import Handler, HandlerKey, HandlerTable
from marketfeed.models import (
    ChannelUpdate,
    DecodedMessage,
    EventKind,
    Heartbeat,
    Pong,
    SubscriptionStatus,
    SystemStatus,
    UnknownEvent,
)

logger = structlog.get_logger(__name__)


class Dispatcher:
    """
    Resolves each decoded message to exactly one handler and schedules it.

    ``dispatch`` runs in the connection's read loop and never awaits: every
    handler invocation runs as its own task, so a slow or failing handler
    cannot hold up the next frame. Coroutine handlers run on the loop; plain
    callables run in a worker thread via ``asyncio.to_thread``. Registry
    updates happen synchronously inside ``dispatch``, in arrival order.
    """

    def __init__(
        self,
        handlers: HandlerTable,
        registry: ChannelRegistry,
        *,
        handler_timeout: float | None = None,
        log: Any = None,
    ) -> None:
        self._handlers = handlers
        self._registry = registry
        self._handler_timeout = handler_timeout or None
        self._log = log if log is not None else logger
        self._tasks: set[asyncio.Task[None]] = set()
        self._awaiting_pong: set[int] = set()
        self._stopped = False

    @property
    def pending(self) -> int:
        """Number of handler invocations still running."""
        return len(self._tasks)

    def expect_pong(self, request_id: int) -> None:
        self._awaiting_pong.add(request_id)

    def dispatch(self, message: DecodedMessage) -> None:
        if self._stopped:
            self._log.debug("dispatch_after_shutdown", kind=message.kind)
            return

        if isinstance(message, ChannelUpdate):
            self._dispatch_channel_update(message)
        elif isinstance(message, Heartbeat):
            self._invoke_system(EventKind.HEARTBEAT, message)
        elif isinstance(message, Pong):
            self._dispatch_pong(message)
        elif isinstance(message, SubscriptionStatus):
            self._dispatch_subscription_status(message)
        elif isinstance(message, SystemStatus):
            self._invoke_system(EventKind.SYSTEM_STATUS, message)
        elif isinstance(message, UnknownEvent):
            self._log.warning("unknown_message", reason=message.reason, raw=_preview(message.raw))
        else:
            raise TypeError(f"cannot dispatch {type(message).__name__}")

    def dispatch_error(self, error: ProtocolError) -> None:
        if self._stopped:
            return
        self._invoke_system(EventKind.ERROR, error)

    async def drain(self) -> None:
        """Wait until every scheduled handler has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop dispatching and cancel handlers that are still running."""
        self._stopped = True
        self._awaiting_pong.clear()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self._log.info("handlers_cancelled", count=len(tasks))
        self._tasks.clear()

    # ── Per-kind routing ──────────────────────────────────────────────

    def _dispatch_channel_update(self, message: ChannelUpdate) -> None:
        entry = self._registry.resolve_positional(
            message.channel_id, message.channel_name, message.symbol
        )
        if entry is None:
            self._log.warning(
                "unresolved_channel",
                channel_id=message.channel_id,
                channel=message.channel_name,
            )
            return

        handler = self._handlers.get(entry.channel_type)
        if handler is None:
            self._log.debug(
                "no_handler",
                channel=entry.channel_type.value,
                symbol=entry.symbol,
            )
            return

        self._schedule(entry.channel_type, handler, entry.symbol, message.interval, message.payload)

    def _dispatch_pong(self, message: Pong) -> None:
        if message.request_id is not None and message.request_id in self._awaiting_pong:
            self._awaiting_pong.discard(message.request_id)
            self._log.debug("pong_correlated", reqid=message.request_id)
        else:
            # Tolerated: the handler still runs for uncorrelated pongs.
            self._log.warning(
                "pong_uncorrelated",
                reqid=message.request_id,
                awaiting=sorted(self._awaiting_pong),
            )
        self._invoke_system(EventKind.PONG, message)

    def _dispatch_subscription_status(self, message: SubscriptionStatus) -> None:
        if message.symbol is None and message.request_id is not None:
            message = self._enrich_from_request(message)

        if (
            message.status == "subscribed"
            and message.symbol is not None
            and message.channel_type is not None
        ):
            self._registry.confirm(
                message.symbol,
                message.channel_type,
                message.channel_id,
                message.interval,
            )

        self._invoke_system(EventKind.SUBSCRIPTION_STATUS, message)

    def _enrich_from_request(self, message: SubscriptionStatus) -> SubscriptionStatus:
        """Fill in symbol / channel for acks that only echo the request id."""
        entries = self._registry.entries_for_request(message.request_id)
        if not entries:
            return message

        update: dict[str, Any] = {"channel_type": entries[0].channel_type}
        if len(entries) == 1:
            update.update(
                symbol=entries[0].symbol,
                channel_id=entries[0].channel_id,
                interval=entries[0].interval,
            )
        elif message.status == "subscribed":
            for entry in entries:
                self._registry.confirm(entry.symbol, entry.channel_type, entry.channel_id)
        return message.model_copy(update=update)

    # ── Invocation ────────────────────────────────────────────────────

    def _invoke_system(self, kind: EventKind, message: Any) -> None:
        handler = self._handlers.get(kind)
        if handler is None:
            self._log.debug("no_handler", handler=kind.value)
            return
        self._schedule(kind, handler, message)

    def _schedule(self, key: HandlerKey, handler: Handler, *args: Any) -> None:
        task = asyncio.get_running_loop().create_task(self._run_handler(key, handler, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, key: HandlerKey, handler: Handler, args: tuple[Any, ...]) -> None:
        try:
            call = _call_handler(handler, args)
            if self._handler_timeout:
                await asyncio.wait_for(call, self._handler_timeout)
            else:
                await call
        except asyncio.TimeoutError:
            self._log.warning("handler_timeout", handler=key.value, timeout=self._handler_timeout)
        except Exception:
            self._log.exception("handler_error", handler=key.value)


async def _call_handler(handler: Handler, args: tuple[Any, ...]) -> Any:
    # Plain callables run in a worker thread.
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)
    result = await asyncio.to_thread(handler, *args)
    if inspect.isawaitable(result):
        return await result
    return result


def _preview(raw: Any, limit: int = 200) -> str:
    text = raw if isinstance(raw, str) else str(raw)
    return text[:limit]
