"""marketfeed channels -- List the channel types each exchange supports."""

from __future__ import annotations

from typing import Optional

import typer

from marketfeed.cli.display import console, create_channel_table

EXCHANGES = ("kraken", "binance")

EXAMPLES: dict[str, dict[str, str]] = {
    "kraken": {
        "ticker": "marketfeed tail ticker XBT/USD",
        "ohlc": "marketfeed tail ohlc XBT/USD --interval 5",
        "trade": "marketfeed tail trade XBT/USD",
        "spread": "marketfeed tail spread XBT/USD",
        "book": "marketfeed tail book XBT/USD --depth 10",
    },
    "binance": {
        "ticker": "marketfeed tail ticker BTCUSDT -e binance",
        "trade": "marketfeed tail trade BTCUSDT -e binance",
        "book": "marketfeed tail book BTCUSDT -e binance --depth 5",
        "kline": "marketfeed tail kline BTCUSDT -e binance --interval 1m",
    },
}


def channels(
    exchange: Optional[str] = typer.Option(None, "--exchange", "-e", help="Only this exchange"),
) -> None:
    """List supported channel types."""
    from marketfeed.ingestion import get_wire_format

    names = [exchange] if exchange else list(EXCHANGES)
    table = create_channel_table()
    for name in names:
        try:
            wire = get_wire_format(name)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        for channel in sorted(c.value for c in wire.channel_types):
            table.add_row(wire.name, channel, EXAMPLES.get(wire.name, {}).get(channel, ""))
    console.print(table)
