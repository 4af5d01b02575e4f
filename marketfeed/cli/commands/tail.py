"""marketfeed tail <channel> <symbols...> -- Stream channel updates to the terminal.

Examples:
    marketfeed tail ticker XBT/USD ETH/USD
    marketfeed tail ohlc XBT/USD --interval 5
    marketfeed tail kline BTCUSDT --exchange binance --interval 1m --count 20
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import typer

from marketfeed.cli.display import console, format_update
from marketfeed.errors import FeedError


async def _tail_async(
    channel: str,
    symbols: list[str],
    exchange: Optional[str],
    interval: Optional[str],
    depth: Optional[int],
    count: int,
) -> None:
    from marketfeed.config import get_config
    from marketfeed.ingestion import FeedClient
    from marketfeed.log import configure_logging

    config = get_config()
    configure_logging(config.logging)

    done = asyncio.Event()
    seen = 0

    async def on_update(symbol: str, update_interval: str | None, payload: Any) -> None:
        nonlocal seen
        console.print(format_update(channel, symbol, update_interval, payload))
        seen += 1
        if count and seen >= count:
            done.set()

    def on_close(reason: str) -> None:
        console.print(f"[dim]Connection closed ({reason}).[/dim]")
        done.set()

    params: dict = {}
    if interval is not None:
        params["interval"] = int(interval) if interval.isdigit() else interval
    if depth is not None:
        params["depth"] = depth

    try:
        client = FeedClient(exchange, config=config, on_close=on_close)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return

    try:
        await client.connect()
    except FeedError as e:
        console.print(f"[red]Cannot connect:[/red] {e}")
        return

    reader = asyncio.create_task(client.run())
    try:
        await client.subscribe(symbols, channel, params, handler=on_update)
    except FeedError as e:
        console.print(f"[red]Subscribe failed:[/red] {e}")
        await client.close()
        await reader
        return

    console.print(
        f"[bold cyan]--- {client.exchange} {channel} {' '.join(symbols)} (Ctrl+C to stop) ---[/bold cyan]"
    )
    try:
        await done.wait()
    finally:
        await client.close()
        await reader


def tail(
    channel: str = typer.Argument(..., help="Channel type (ticker, trade, book, ohlc, spread, kline)"),
    symbols: List[str] = typer.Argument(..., help="One or more symbols, e.g. XBT/USD or BTCUSDT"),
    exchange: Optional[str] = typer.Option(None, "--exchange", "-e", help="kraken or binance"),
    interval: Optional[str] = typer.Option(None, "--interval", "-i", help="Candle interval"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Book depth"),
    count: int = typer.Option(0, "--count", "-n", help="Stop after N updates (0 = run forever)"),
) -> None:
    """Subscribe to a channel and print every update."""
    try:
        asyncio.run(_tail_async(channel, symbols, exchange, interval, depth, count))
    except KeyboardInterrupt:
        console.print("\n[dim]Tail stopped.[/dim]")
