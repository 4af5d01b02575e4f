"""Handler table: event / channel name → application callback."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from marketfeed.errors import ProtocolError
from marketfeed.models import ChannelType, EventKind, Pong, SubscriptionStatus, SystemStatus

logger = structlog.get_logger(__name__)

HandlerKey = EventKind | ChannelType
Handler = Callable[..., Any]


def coerce_handler_key(name: str | HandlerKey) -> HandlerKey:
    """Turn a plain string into the EventKind / ChannelType it names."""
    if isinstance(name, (EventKind, ChannelType)):
        return name
    try:
        return EventKind(name)
    except ValueError:
        pass
    try:
        return ChannelType(name)
    except ValueError:
        raise ValueError(f"unknown handler name: {name!r}") from None


class HandlerTable:
    """At most one callback per event kind or channel type; last set wins."""

    def __init__(self, handlers: Mapping[str | HandlerKey, Handler | None] | None = None) -> None:
        self._handlers: dict[HandlerKey, Handler] = {}
        for name, callback in (handlers or {}).items():
            self.set(name, callback)

    def __contains__(self, name: object) -> bool:
        try:
            return coerce_handler_key(name) in self._handlers  # type: ignore[arg-type]
        except ValueError:
            return False

    def set(self, name: str | HandlerKey, callback: Handler | None) -> None:
        """Register ``callback`` for ``name``; None removes the registration."""
        key = coerce_handler_key(name)
        if callback is None:
            self._handlers.pop(key, None)
        else:
            self._handlers[key] = callback

    def get(self, name: str | HandlerKey) -> Handler | None:
        try:
            return self._handlers.get(coerce_handler_key(name))
        except ValueError:
            return None

    def names(self) -> frozenset[HandlerKey]:
        return frozenset(self._handlers)

    def clear(self) -> None:
        self._handlers.clear()


# ── Default system handlers ───────────────────────────────────────────


def build_default_handlers(log: Any = None) -> dict[HandlerKey, Handler]:
    """System handlers that only log, installed on every new client."""
    log = log if log is not None else logger

    def on_heartbeat(_msg: Any) -> None:
        return None

    def on_pong(msg: Pong) -> None:
        log.info("pong_received", reqid=msg.request_id)

    def on_subscription_status(msg: SubscriptionStatus) -> None:
        if msg.status in ("subscribed", "unsubscribed"):
            log.info(
                "subscription_status",
                status=msg.status,
                channel=msg.channel_name or (msg.channel_type.value if msg.channel_type else None),
                symbol=msg.symbol,
                reqid=msg.request_id,
            )
        elif msg.status == "error":
            log.error(
                "subscription_error",
                symbol=msg.symbol,
                error=msg.error_message,
                subscription=msg.subscription,
                reqid=msg.request_id,
            )
        else:
            log.warning("unexpected_subscription_status", status=msg.status)

    def on_system_status(msg: SystemStatus) -> None:
        log.info("system_status", version=msg.version, status=msg.status)

    def on_error(err: ProtocolError) -> None:
        log.error(
            "ws_protocol_error",
            code=err.code,
            message=err.message,
            reqid=err.request_id,
        )

    return {
        EventKind.HEARTBEAT: on_heartbeat,
        EventKind.PONG: on_pong,
        EventKind.SUBSCRIPTION_STATUS: on_subscription_status,
        EventKind.SYSTEM_STATUS: on_system_status,
        EventKind.ERROR: on_error,
    }
