"""Kraken public websocket (v1) wire format.

Inbound frames are either positional channel updates::

    [channelID, payload, "ohlc-5", "XBT/USD"]
    [channelID, {"a": [...]}, {"b": [...]}, "book-10", "XBT/USD"]

or objects keyed by ``event`` (heartbeat, pong, subscriptionStatus,
systemStatus, error).
"""

from __future__ import annotations

from typing import Any

from marketfeed.errors import ProtocolError
from marketfeed.ingestion.channel_registry import split_channel_name
from marketfeed.ingestion.wire import WireFormat
from marketfeed.models import (
    ChannelType,
    ChannelUpdate,
    DecodedMessage,
    Heartbeat,
    Pong,
    SubscriptionRequest,
    SubscriptionStatus,
    SystemStatus,
    UnknownEvent,
)

KRAKEN_CHANNELS = frozenset(
    {
        ChannelType.TICKER,
        ChannelType.OHLC,
        ChannelType.TRADE,
        ChannelType.SPREAD,
        ChannelType.BOOK,
    }
)


class KrakenWireFormat(WireFormat):
    name = "kraken"
    channel_types = KRAKEN_CHANNELS

    def decode(self, msg: Any) -> DecodedMessage:
        if isinstance(msg, list):
            return self._decode_positional(msg)
        if isinstance(msg, dict):
            return self._decode_event(msg)
        return UnknownEvent(raw=msg, reason="unexpected_frame_shape")

    def encode_subscribe(self, request: SubscriptionRequest, request_id: int) -> dict[str, Any]:
        subscription: dict[str, Any] = {"name": request.channel_type.value}
        subscription.update(request.params)
        if subscription.get("interval") is None:
            subscription.pop("interval", None)
        return {
            "event": "subscribe",
            "pair": list(request.symbols),
            "subscription": subscription,
            "reqid": request_id,
        }

    def encode_ping(self, request_id: int) -> dict[str, Any]:
        return {"event": "ping", "reqid": request_id}

    # ── Inbound ───────────────────────────────────────────────────────

    def _decode_positional(self, msg: list[Any]) -> DecodedMessage:
        if len(msg) < 4:
            return UnknownEvent(raw=msg, reason="short_positional_frame")

        channel_id = msg[0]
        channel_name, symbol = msg[-2], msg[-1]
        if not isinstance(channel_name, str) or not isinstance(symbol, str):
            return UnknownEvent(raw=msg, reason="malformed_positional_frame")

        payloads = msg[1:-2]
        payload = payloads[0] if len(payloads) == 1 else list(payloads)

        type_name, interval = split_channel_name(channel_name)
        channel_type = self._known_channel(type_name)
        if channel_type is None:
            return UnknownEvent(raw=msg, reason="unknown_channel")

        return ChannelUpdate(
            channel_id=channel_id,
            channel_name=channel_name,
            symbol=symbol,
            channel_type=channel_type,
            interval=interval,
            payload=payload,
        )

    def _decode_event(self, msg: dict[str, Any]) -> DecodedMessage:
        event = msg.get("event")

        if event == "heartbeat":
            return Heartbeat()
        if event == "pong":
            return Pong(request_id=msg.get("reqid"), raw=msg)
        if event == "subscriptionStatus":
            return self._decode_subscription_status(msg)
        if event == "systemStatus":
            return SystemStatus(
                version=msg.get("version"),
                status=msg.get("status"),
                connection_id=msg.get("connectionID"),
            )
        if event == "error":
            raise ProtocolError(
                msg.get("errorMessage"),
                request_id=msg.get("reqid"),
                raw=msg,
            )
        return UnknownEvent(raw=msg, reason="unknown_event")

    def _decode_subscription_status(self, msg: dict[str, Any]) -> SubscriptionStatus:
        subscription = msg.get("subscription") if isinstance(msg.get("subscription"), dict) else None
        channel_name = msg.get("channelName")
        if channel_name is None and subscription is not None:
            channel_name = subscription.get("name")

        channel_type = None
        interval = None
        if isinstance(channel_name, str):
            type_name, interval = split_channel_name(channel_name)
            channel_type = self._known_channel(type_name)
        if interval is None and subscription is not None and subscription.get("interval") is not None:
            interval = str(subscription["interval"])

        pair = msg.get("pair")
        return SubscriptionStatus(
            status=str(msg.get("status", "")),
            symbol=pair if isinstance(pair, str) else None,
            channel_type=channel_type,
            channel_name=channel_name,
            interval=interval,
            channel_id=msg.get("channelID"),
            request_id=msg.get("reqid"),
            error_message=msg.get("errorMessage"),
            subscription=subscription,
        )

    def _known_channel(self, type_name: str) -> ChannelType | None:
        try:
            channel_type = ChannelType(type_name)
        except ValueError:
            return None
        return channel_type if channel_type in self.channel_types else None
