"""marketfeed CLI entry point.

Usage:
    python -m marketfeed.cli.main [COMMAND] [OPTIONS]

Or via the installed console script:
    marketfeed [COMMAND] [OPTIONS]
"""

from __future__ import annotations

import typer

from marketfeed.cli.commands import channels, ping, tail

app = typer.Typer(
    name="marketfeed",
    help="marketfeed -- exchange market-data websocket client",
    no_args_is_help=True,
    add_completion=False,
    pretty_exceptions_enable=True,
)

# Register sub-commands from each module.
app.command(name="tail", help="Stream channel updates in real time")(tail.tail)
app.command(name="ping", help="Ping the exchange websocket")(ping.ping)
app.command(name="channels", help="List supported channel types")(channels.channels)


if __name__ == "__main__":
    app()
