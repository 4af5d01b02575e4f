"""Unit tests for Binance frame decoding and request encoding."""

from __future__ import annotations

import pytest

from marketfeed.errors import ProtocolError, SubscriptionValidationError
from marketfeed.ingestion.binance import BinanceWireFormat
from marketfeed.models import (
    ChannelType,
    ChannelUpdate,
    Pong,
    SubscriptionRequest,
    SubscriptionStatus,
    UnknownEvent,
)


@pytest.fixture
def wire() -> BinanceWireFormat:
    return BinanceWireFormat()


class TestStreamNames:
    def test_kline(self, wire: BinanceWireFormat) -> None:
        assert wire.stream_name("BTCUSDT", ChannelType.KLINE, {"interval": "5m"}) == "btcusdt@kline_5m"

    def test_kline_default_interval(self, wire: BinanceWireFormat) -> None:
        assert wire.stream_name("BTCUSDT", ChannelType.KLINE, {}) == "btcusdt@kline_1m"

    def test_book_depth_and_speed(self, wire: BinanceWireFormat) -> None:
        assert wire.stream_name("ETHBTC", ChannelType.BOOK, {}) == "ethbtc@depth"
        assert wire.stream_name("ETHBTC", ChannelType.BOOK, {"depth": 5, "speed": 100}) == "ethbtc@depth5@100ms"

    def test_symbol_normalisation(self, wire: BinanceWireFormat) -> None:
        assert wire.normalize_symbol("btc/usdt") == "BTCUSDT"
        assert wire.stream_name("btc/usdt", ChannelType.TRADE, {}) == "btcusdt@trade"


class TestEncoding:
    def test_subscribe(self, wire: BinanceWireFormat) -> None:
        request = SubscriptionRequest(
            symbols=["BTCUSDT", "ETHUSDT"], channel_type="kline", params={"interval": "1m"}
        )
        assert wire.encode_subscribe(request, 7) == {
            "method": "SUBSCRIBE",
            "params": ["btcusdt@kline_1m", "ethusdt@kline_1m"],
            "id": 7,
        }

    def test_ping(self, wire: BinanceWireFormat) -> None:
        assert wire.encode_ping(2) == {"method": "LIST_SUBSCRIPTIONS", "id": 2}

    def test_validate_channel(self, wire: BinanceWireFormat) -> None:
        assert wire.validate_channel("kline") is ChannelType.KLINE
        with pytest.raises(SubscriptionValidationError):
            wire.validate_channel("ohlc")
        with pytest.raises(SubscriptionValidationError):
            wire.validate_channel("spread")


class TestDecoding:
    def test_kline(self, wire: BinanceWireFormat, binance_kline_msg: dict) -> None:
        msg = wire.decode(binance_kline_msg)
        assert isinstance(msg, ChannelUpdate)
        assert msg.channel_id == "btcusdt@kline_1m"
        assert msg.channel_name == "kline-1m"
        assert msg.symbol == "BTCUSDT"
        assert msg.channel_type is ChannelType.KLINE
        assert msg.interval == "1m"
        assert msg.payload == binance_kline_msg["data"]["k"]

    def test_trade(self, wire: BinanceWireFormat, binance_trade_msg: dict) -> None:
        msg = wire.decode(binance_trade_msg)
        assert msg.channel_type is ChannelType.TRADE
        assert msg.channel_id == "btcusdt@trade"
        assert msg.payload["p"] == "0.001"

    def test_raw_event_without_envelope(self, wire: BinanceWireFormat, binance_trade_msg: dict) -> None:
        msg = wire.decode(binance_trade_msg["data"])
        assert isinstance(msg, ChannelUpdate)
        assert msg.channel_id == "btcusdt@trade"

    def test_ticker(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode(
            {"stream": "bnbbtc@ticker", "data": {"e": "24hrTicker", "s": "BNBBTC", "c": "0.0025"}}
        )
        assert msg.channel_type is ChannelType.TICKER
        assert msg.symbol == "BNBBTC"

    def test_diff_depth(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode(
            {
                "stream": "bnbbtc@depth",
                "data": {"e": "depthUpdate", "s": "BNBBTC", "U": 157, "u": 160, "b": [], "a": []},
            }
        )
        assert msg.channel_type is ChannelType.BOOK
        assert msg.channel_id == "bnbbtc@depth"

    def test_partial_depth_identified_by_stream(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode(
            {
                "stream": "bnbbtc@depth5@100ms",
                "data": {"lastUpdateId": 160, "bids": [["0.0024", "10"]], "asks": [["0.0026", "100"]]},
            }
        )
        assert isinstance(msg, ChannelUpdate)
        assert msg.symbol == "BNBBTC"
        assert msg.channel_type is ChannelType.BOOK
        assert msg.interval == "5"

    def test_subscribe_ack(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode({"result": None, "id": 1})
        assert isinstance(msg, SubscriptionStatus)
        assert msg.status == "subscribed"
        assert msg.request_id == 1
        assert msg.symbol is None

    def test_list_reply_is_pong(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode({"result": ["btcusdt@trade"], "id": 3})
        assert isinstance(msg, Pong)
        assert msg.request_id == 3

    def test_error_object_raises(self, wire: BinanceWireFormat) -> None:
        with pytest.raises(ProtocolError) as excinfo:
            wire.decode({"error": {"code": 2, "msg": "Invalid request: unknown variant"}, "id": 5})
        assert excinfo.value.code == 2
        assert excinfo.value.request_id == 5

    def test_unknown_event_type(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode({"stream": "x@forceOrder", "data": {"e": "forceOrder", "s": "BTCUSDT"}})
        assert isinstance(msg, UnknownEvent)

    @pytest.mark.parametrize("event_type", [["trade"], {"e": "trade"}, 7])
    def test_non_string_event_type_is_unknown(self, wire: BinanceWireFormat, event_type) -> None:
        msg = wire.decode({"stream": "btcusdt@trade", "data": {"e": event_type, "s": "BTCUSDT"}})
        assert isinstance(msg, UnknownEvent)
        assert msg.reason == "malformed_stream_event"

    def test_array_frame_is_unknown(self, wire: BinanceWireFormat) -> None:
        msg = wire.decode([1, 2, 3])
        assert isinstance(msg, UnknownEvent)
        assert msg.reason == "unexpected_frame_shape"
