"""Shared test fixtures for the marketfeed test suite."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

import orjson
import pytest

from marketfeed.errors import TransportError
from marketfeed.ingestion import FeedClient


class FakeTransport:
    """In-memory transport: records sends, replays pushed frames."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.opened_url: str | None = None
        self.send_ok = True
        self.fail_open = False
        self.closed = False
        self._frames: asyncio.Queue[Any] = asyncio.Queue()

    async def open(self, url: str) -> None:
        if self.fail_open:
            raise TransportError("connection refused")
        self.opened_url = url

    async def send(self, text: str) -> bool:
        self.sent.append(orjson.loads(text))
        return self.send_ok

    def push(self, frame: Any) -> None:
        """Queue a frame; non-strings are JSON-encoded first."""
        if not isinstance(frame, (str, bytes)):
            frame = orjson.dumps(frame).decode()
        self._frames.put_nowait(frame)

    def fail(self, error: Exception) -> None:
        """Make the frame iterator raise ``error`` once it gets there."""
        self._frames.put_nowait(error)

    def end(self) -> None:
        """Simulate the server closing the connection normally."""
        self._frames.put_nowait(None)

    async def frames(self):
        while True:
            item = await self._frames.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True
        self._frames.put_nowait(None)


def make_config(exchange: str = "kraken") -> MagicMock:
    config = MagicMock()
    config.exchange.exchange = exchange
    config.exchange.url_for.return_value = f"wss://{exchange}.test/ws"
    config.tuning.ws_ping_interval = 30
    config.tuning.ws_pong_timeout = 10
    config.tuning.ws_open_timeout = 10
    config.tuning.ws_max_message_size = 1024 * 1024
    config.tuning.handler_timeout = 5.0
    config.tuning.stats_interval = 60
    return config


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def kraken_config() -> MagicMock:
    return make_config("kraken")


@pytest.fixture
def binance_config() -> MagicMock:
    return make_config("binance")


@pytest.fixture
async def kraken_client(transport: FakeTransport, kraken_config: MagicMock):
    """An open Kraken client wired to the fake transport."""
    client = FeedClient("kraken", config=kraken_config, transport=transport)
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def binance_client(transport: FakeTransport, binance_config: MagicMock):
    """An open Binance client wired to the fake transport."""
    client = FeedClient("binance", config=binance_config, transport=transport)
    await client.connect()
    yield client
    await client.close()


# ---------------------------------------------------------------------------
# Sample frames as received from the exchanges
# ---------------------------------------------------------------------------


@pytest.fixture
def kraken_ticker_frame() -> list:
    return [
        340,
        {
            "a": ["5525.40000", 1, "1.000"],
            "b": ["5525.10000", 1, "1.000"],
            "c": ["5525.10000", "0.00398963"],
            "v": ["2634.11501494", "3591.17907851"],
            "p": ["5631.44067", "5653.78939"],
            "t": [11493, 16267],
            "l": ["5505.00000", "5505.00000"],
            "h": ["5783.00000", "5783.00000"],
            "o": ["5760.70000", "5763.40000"],
        },
        "ticker",
        "XBT/USD",
    ]


@pytest.fixture
def kraken_ohlc_frame() -> list:
    return [
        42,
        [
            "1542057314.748456",
            "1542057360.435743",
            "3586.70000",
            "3586.70000",
            "3586.60000",
            "3586.60000",
            "3586.68894",
            "0.03373000",
            2,
        ],
        "ohlc-5",
        "XBT/USD",
    ]


@pytest.fixture
def kraken_book_update_frame() -> list:
    return [
        1234,
        {"a": [["5541.30000", "2.50700000", "1534614248.456738"]]},
        {"b": [["5541.20000", "1.52900000", "1534614248.765567"]]},
        "book-10",
        "XBT/USD",
    ]


@pytest.fixture
def kraken_subscribed_msg() -> dict:
    return {
        "channelID": 340,
        "channelName": "ticker",
        "event": "subscriptionStatus",
        "pair": "XBT/USD",
        "reqid": 1,
        "status": "subscribed",
        "subscription": {"name": "ticker"},
    }


@pytest.fixture
def binance_kline_msg() -> dict:
    return {
        "stream": "btcusdt@kline_1m",
        "data": {
            "e": "kline",
            "E": 1672515782136,
            "s": "BTCUSDT",
            "k": {
                "t": 1672515780000,
                "T": 1672515839999,
                "s": "BTCUSDT",
                "i": "1m",
                "o": "0.0010",
                "c": "0.0020",
                "h": "0.0025",
                "l": "0.0015",
                "v": "1000",
                "x": False,
            },
        },
    }


@pytest.fixture
def binance_trade_msg() -> dict:
    return {
        "stream": "btcusdt@trade",
        "data": {
            "e": "trade",
            "E": 1672515782136,
            "s": "BTCUSDT",
            "t": 12345,
            "p": "0.001",
            "q": "100",
            "T": 1672515782136,
            "m": True,
        },
    }
