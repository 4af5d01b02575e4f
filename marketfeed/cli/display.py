"""Rich console formatting helpers for the marketfeed CLI."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

# Shared theme for consistent styling across all CLI output.
FEED_THEME = Theme(
    {
        "channel.ticker": "bold cyan",
        "channel.trade": "bold green",
        "channel.book": "bold yellow",
        "channel.spread": "magenta",
        "channel.ohlc": "blue",
        "channel.kline": "blue",
        "ok": "bold green",
        "warning": "bold yellow",
        "critical": "bold red",
        "header": "bold cyan",
        "muted": "dim",
    }
)

console = Console(theme=FEED_THEME)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_channel(channel: str, interval: str | None = None) -> Text:
    """Channel name coloured by type, with the interval appended if any."""
    label = f"{channel}-{interval}" if interval else channel
    return Text(label, style=f"channel.{channel}")


def format_payload(payload: Any, limit: int = 160) -> str:
    """Compact one-line JSON for an update payload."""
    try:
        text = orjson.dumps(payload).decode()
    except TypeError:
        text = str(payload)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def format_now() -> str:
    return datetime.now(tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]


def format_update(channel: str, symbol: str, interval: str | None, payload: Any) -> Text:
    """One line per channel update: time, channel, symbol, payload."""
    line = Text(format_now(), style="muted")
    line.append("  ")
    line.append_text(format_channel(channel, interval))
    line.append("  ")
    line.append(symbol, style="bold")
    line.append("  ")
    line.append(format_payload(payload))
    return line


def format_status(ok: bool) -> Text:
    """Green OK for healthy, red FAIL for unhealthy."""
    if ok:
        return Text("[OK]", style="ok")
    return Text("[FAIL]", style="critical")


# ---------------------------------------------------------------------------
# Reusable table builders
# ---------------------------------------------------------------------------

def create_channel_table(title: str = "Channels") -> Table:
    """Build a Rich Table for the supported-channels listing."""
    table = Table(title=title, show_lines=False, pad_edge=True)
    table.add_column("Exchange", style="header")
    table.add_column("Channel", style="bold")
    table.add_column("Example", style="muted")
    return table
