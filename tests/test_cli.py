"""Tests for the CLI commands that need no network, and the display helpers."""

from __future__ import annotations

from unittest.mock import patch

from typer.testing import CliRunner

from marketfeed.cli.display import format_channel, format_payload, format_update
from marketfeed.cli.main import app
from marketfeed.ingestion import FeedClient

from conftest import FakeTransport, make_config

runner = CliRunner()


class TestChannelsCommand:
    def test_lists_both_exchanges(self) -> None:
        result = runner.invoke(app, ["channels"])
        assert result.exit_code == 0
        assert "kraken" in result.output
        assert "binance" in result.output
        assert "spread" in result.output
        assert "kline" in result.output

    def test_single_exchange(self) -> None:
        result = runner.invoke(app, ["channels", "--exchange", "binance"])
        assert result.exit_code == 0
        assert "kraken" not in result.output

    def test_unknown_exchange(self) -> None:
        result = runner.invoke(app, ["channels", "-e", "bitfinex"])
        assert result.exit_code == 1


class TestDisplay:
    def test_channel_label_with_interval(self) -> None:
        assert format_channel("ohlc", "5").plain == "ohlc-5"
        assert format_channel("ticker").plain == "ticker"

    def test_payload_truncated(self) -> None:
        text = format_payload({"b": ["1" * 500]}, limit=40)
        assert len(text) == 40
        assert text.endswith("...")

    def test_update_line(self) -> None:
        line = format_update("trade", "XBT/USD", None, [["5541.2", "0.15"]])
        assert "XBT/USD" in line.plain
        assert '[["5541.2","0.15"]]' in line.plain


class _PongingTransport(FakeTransport):
    """Answers every ping with a matching pong."""

    async def send(self, text: str) -> bool:
        ok = await super().send(text)
        request = self.sent[-1]
        if request.get("event") == "ping":
            self.push({"event": "pong", "reqid": request["reqid"]})
        return ok


class TestPingCommand:
    def _invoke(self, transport: FakeTransport, *args: str):
        def client_factory(exchange, config):
            return FeedClient("kraken", config=make_config(), transport=transport)

        with patch("marketfeed.ingestion.FeedClient", side_effect=client_factory), patch(
            "marketfeed.log.configure_logging"
        ):
            return runner.invoke(app, ["ping", *args])

    def test_reports_round_trip(self) -> None:
        result = self._invoke(_PongingTransport())
        assert result.exit_code == 0
        assert "pong reqid=1" in result.output

    def test_missing_pong_fails(self) -> None:
        result = self._invoke(FakeTransport(), "--timeout", "0.05")
        assert result.exit_code == 1
        assert "no pong" in result.output
