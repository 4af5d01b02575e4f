"""Binance combined-stream wire format.

Requests are ``{"method": ..., "params": [...], "id": n}``. Inbound frames are
command replies (``{"result": ..., "id": n}`` / ``{"error": {...}, "id": n}``)
or stream events, usually wrapped as ``{"stream": "btcusdt@trade", "data": {...}}``.
The stream name doubles as the channel id.
"""

from __future__ import annotations

import re
from typing import Any

from marketfeed.errors import ProtocolError
from marketfeed.ingestion.channel_registry import join_channel_name
from marketfeed.ingestion.wire import WireFormat
from marketfeed.models import (
    ChannelType,
    ChannelUpdate,
    DecodedMessage,
    Pong,
    SubscriptionRequest,
    SubscriptionStatus,
    UnknownEvent,
)

BINANCE_CHANNELS = frozenset(
    {
        ChannelType.TICKER,
        ChannelType.TRADE,
        ChannelType.BOOK,
        ChannelType.KLINE,
    }
)

# Event type (data.e) → channel
EVENT_CHANNELS: dict[str, ChannelType] = {
    "kline": ChannelType.KLINE,
    "trade": ChannelType.TRADE,
    "24hrTicker": ChannelType.TICKER,
    "depthUpdate": ChannelType.BOOK,
}

DEFAULT_KLINE_INTERVAL = "1m"

_PARTIAL_DEPTH_RE = re.compile(r"^(?P<symbol>[a-z0-9]+)@depth(?P<levels>\d+)(@\d+ms)?$")


class BinanceWireFormat(WireFormat):
    name = "binance"
    channel_types = BINANCE_CHANNELS

    def normalize_symbol(self, symbol: str) -> str:
        return symbol.replace("/", "").upper()

    def stream_name(self, symbol: str, channel_type: ChannelType, params: dict[str, Any]) -> str:
        """Stream name for one symbol, e.g. ``btcusdt@kline_1m``."""
        base = self.normalize_symbol(symbol).lower()
        if channel_type is ChannelType.KLINE:
            return f"{base}@kline_{params.get('interval') or DEFAULT_KLINE_INTERVAL}"
        if channel_type is ChannelType.TRADE:
            return f"{base}@trade"
        if channel_type is ChannelType.TICKER:
            return f"{base}@ticker"
        if channel_type is ChannelType.BOOK:
            name = f"{base}@depth{params.get('depth') or ''}"
            speed = params.get("speed")
            return f"{name}@{speed}ms" if speed else name
        raise ValueError(f"no binance stream for channel {channel_type.value!r}")

    def tentative_channel_id(self, symbol: str, request: SubscriptionRequest) -> str:
        return self.stream_name(symbol, request.channel_type, request.params)

    def encode_subscribe(self, request: SubscriptionRequest, request_id: int) -> dict[str, Any]:
        return {
            "method": "SUBSCRIBE",
            "params": [self.tentative_channel_id(s, request) for s in request.symbols],
            "id": request_id,
        }

    def encode_ping(self, request_id: int) -> dict[str, Any]:
        # No application-level ping on this API; the subscription list reply
        # is used as the pong.
        return {"method": "LIST_SUBSCRIPTIONS", "id": request_id}

    # ── Inbound ───────────────────────────────────────────────────────

    def decode(self, msg: Any) -> DecodedMessage:
        if not isinstance(msg, dict):
            return UnknownEvent(raw=msg, reason="unexpected_frame_shape")

        if msg.get("error") is not None:
            error = msg["error"]
            if isinstance(error, dict):
                raise ProtocolError(error.get("msg"), code=error.get("code"), request_id=msg.get("id"), raw=msg)
            raise ProtocolError(str(error), request_id=msg.get("id"), raw=msg)

        if "result" in msg and "id" in msg:
            return self._decode_reply(msg)

        if "stream" in msg and "data" in msg:
            return self._decode_stream_event(msg["stream"], msg["data"], msg)
        return self._decode_stream_event(None, msg, msg)

    def _decode_reply(self, msg: dict[str, Any]) -> DecodedMessage:
        result = msg["result"]
        if result is None:
            return SubscriptionStatus(status="subscribed", request_id=msg["id"])
        if isinstance(result, list):
            return Pong(request_id=msg["id"], raw=msg)
        return UnknownEvent(raw=msg, reason="unexpected_result")

    def _decode_stream_event(self, stream: Any, data: Any, raw: dict[str, Any]) -> DecodedMessage:
        if not isinstance(data, dict):
            return UnknownEvent(raw=raw, reason="malformed_stream_event")

        event_type = data.get("e")
        if event_type is None:
            return self._decode_partial_depth(stream, data, raw)
        if not isinstance(event_type, str):
            return UnknownEvent(raw=raw, reason="malformed_stream_event")

        channel_type = EVENT_CHANNELS.get(event_type)
        symbol = data.get("s")
        if channel_type is None or not isinstance(symbol, str):
            return UnknownEvent(raw=raw, reason="unknown_event")

        interval = None
        payload: Any = data
        if channel_type is ChannelType.KLINE:
            kline = data.get("k")
            if not isinstance(kline, dict):
                return UnknownEvent(raw=raw, reason="malformed_stream_event")
            interval = kline.get("i")
            payload = kline

        if stream is None:
            stream = self.stream_name(symbol, channel_type, {"interval": interval})

        return ChannelUpdate(
            channel_id=stream,
            channel_name=join_channel_name(channel_type, interval),
            symbol=symbol,
            channel_type=channel_type,
            interval=interval,
            payload=payload,
        )

    def _decode_partial_depth(self, stream: Any, data: dict[str, Any], raw: dict[str, Any]) -> DecodedMessage:
        # Partial book depth snapshots carry no event type; only the stream
        # name identifies them.
        match = _PARTIAL_DEPTH_RE.match(stream) if isinstance(stream, str) else None
        if match is None or "bids" not in data:
            return UnknownEvent(raw=raw, reason="unknown_event")

        return ChannelUpdate(
            channel_id=stream,
            channel_name=join_channel_name(ChannelType.BOOK, match["levels"]),
            symbol=match["symbol"].upper(),
            channel_type=ChannelType.BOOK,
            interval=match["levels"],
            payload=data,
        )
