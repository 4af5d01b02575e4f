"""marketfeed ping -- Round-trip a ping through the exchange websocket."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import typer

from marketfeed.cli.display import console, format_status
from marketfeed.errors import FeedError
from marketfeed.models import Pong


async def _ping_async(exchange: Optional[str], timeout: float) -> bool:
    from marketfeed.config import get_config
    from marketfeed.ingestion import FeedClient
    from marketfeed.log import configure_logging

    config = get_config()
    configure_logging(config.logging)

    pong = asyncio.Event()
    received: dict[str, Any] = {}

    async def on_pong(msg: Pong) -> None:
        received["reqid"] = msg.request_id
        received["at"] = time.perf_counter()
        pong.set()

    try:
        client = FeedClient(exchange, config=config)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return False

    try:
        await client.connect()
    except FeedError as e:
        console.print(format_status(False), f"cannot connect: {e}")
        return False

    reader = asyncio.create_task(client.run())
    try:
        sent_at = time.perf_counter()
        reqid = await client.ping(on_pong)
        try:
            await asyncio.wait_for(pong.wait(), timeout)
        except asyncio.TimeoutError:
            console.print(format_status(False), f"no pong within {timeout:.1f}s (reqid {reqid})")
            return False

        rtt_ms = (received["at"] - sent_at) * 1000
        console.print(
            format_status(True),
            f"{client.exchange} pong reqid={received['reqid']} rtt={rtt_ms:.1f}ms",
        )
        return True
    finally:
        await client.close()
        await reader


def ping(
    exchange: Optional[str] = typer.Option(None, "--exchange", "-e", help="kraken or binance"),
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Seconds to wait for the pong"),
) -> None:
    """Send a ping and report the round-trip time."""
    ok = asyncio.run(_ping_async(exchange, timeout))
    if not ok:
        raise typer.Exit(code=1)
