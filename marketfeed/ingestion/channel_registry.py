"""Maps (symbol, channel type) pairs to server channel ids and back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from marketfeed.models import ChannelType

logger = structlog.get_logger(__name__)

ChannelKey = tuple[str, ChannelType]

CHANNEL_NAME_SEPARATOR = "-"


def split_channel_name(channel_name: str) -> tuple[str, str | None]:
    """Split a combined name like ``"ohlc-5"`` into ``("ohlc", "5")``."""
    name, _, interval = channel_name.partition(CHANNEL_NAME_SEPARATOR)
    return name, interval or None


def join_channel_name(channel_type: ChannelType, interval: Any = None) -> str:
    if interval is None:
        return channel_type.value
    return f"{channel_type.value}{CHANNEL_NAME_SEPARATOR}{interval}"


@dataclass
class ChannelEntry:
    """Tracks a single subscribed channel."""

    symbol: str
    channel_type: ChannelType
    channel_id: int | str | None = None
    interval: str | None = None
    request_id: int | None = None
    confirmed: bool = False

    @property
    def key(self) -> ChannelKey:
        return (self.symbol, self.channel_type)


class ChannelRegistry:
    """
    Registry of subscribed channels for one connection.

    Entries are created as pending when a subscribe request goes out and are
    bound to the server's channel id by the first acknowledgment or update
    that names it. Updates may arrive before the acknowledgment, so an unseen
    channel id is bound from the update itself. Entries are only ever removed
    all at once by ``clear()``.
    """

    def __init__(self, log: Any = None) -> None:
        self._log = log if log is not None else logger
        self._entries: dict[ChannelKey, ChannelEntry] = {}
        self._by_id: dict[int | str, ChannelKey] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def register_pending(
        self,
        symbol: str,
        channel_type: ChannelType,
        *,
        request_id: int | None = None,
        channel_id: int | str | None = None,
        interval: Any = None,
    ) -> ChannelKey:
        """Record a channel we are about to subscribe to.

        ``channel_id`` is a client-side tentative id (e.g. a Binance stream
        name); servers that assign their own ids confirm them later.
        """
        key: ChannelKey = (symbol, channel_type)
        previous = self._entries.get(key)
        if previous is not None and previous.channel_id is not None:
            self._by_id.pop(previous.channel_id, None)

        self._entries[key] = ChannelEntry(
            symbol=symbol,
            channel_type=channel_type,
            channel_id=channel_id,
            interval=str(interval) if interval is not None else None,
            request_id=request_id,
        )
        if channel_id is not None:
            self._bind_id(channel_id, key)
        return key

    def resolve_positional(
        self,
        channel_id: int | str | None,
        channel_name: str,
        symbol: str | None = None,
    ) -> ChannelEntry | None:
        """Resolve a channel update to its entry, binding the id if new.

        Returns None when the id is unknown and the message carried no symbol
        to bind it with. Raises ValueError for a channel name that is not a
        known channel type.
        """
        type_name, interval = split_channel_name(channel_name)
        channel_type = ChannelType(type_name)

        if channel_id is not None:
            bound_key = self._by_id.get(channel_id)
            if bound_key is not None and (symbol is None or bound_key == (symbol, channel_type)):
                entry = self._entries[bound_key]
                if not entry.confirmed:
                    entry.confirmed = True
                if entry.interval is None and interval is not None:
                    entry.interval = interval
                return entry

        if symbol is None:
            return None

        return self._bind(symbol, channel_type, channel_id, interval)

    def confirm(
        self,
        symbol: str,
        channel_type: ChannelType,
        channel_id: int | str | None = None,
        interval: str | None = None,
    ) -> ChannelEntry:
        """Mark a subscription as acknowledged, binding its channel id if given."""
        return self._bind(symbol, channel_type, channel_id, interval)

    def entries_for_request(self, request_id: int) -> list[ChannelEntry]:
        return [e for e in self._entries.values() if e.request_id == request_id]

    def lookup(self, channel_id: int | str) -> ChannelEntry | None:
        key = self._by_id.get(channel_id)
        return self._entries.get(key) if key is not None else None

    def get(self, symbol: str, channel_type: ChannelType) -> ChannelEntry | None:
        return self._entries.get((symbol, channel_type))

    def channel_id_for(self, symbol: str, channel_type: ChannelType) -> int | str | None:
        entry = self._entries.get((symbol, channel_type))
        return entry.channel_id if entry else None

    def entries(self) -> list[ChannelEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        if self._entries:
            self._log.info("channel_registry_cleared", entries=len(self._entries))
        self._entries.clear()
        self._by_id.clear()

    # ── Internals ─────────────────────────────────────────────────────

    def _bind(
        self,
        symbol: str,
        channel_type: ChannelType,
        channel_id: int | str | None,
        interval: str | None,
    ) -> ChannelEntry:
        key: ChannelKey = (symbol, channel_type)
        entry = self._entries.get(key)
        if entry is None:
            entry = ChannelEntry(symbol=symbol, channel_type=channel_type, interval=interval)
            self._entries[key] = entry
        elif interval is not None:
            entry.interval = interval

        if channel_id is not None and entry.channel_id != channel_id:
            if entry.channel_id is not None:
                self._by_id.pop(entry.channel_id, None)
            entry.channel_id = channel_id
            self._bind_id(channel_id, key)

        entry.confirmed = True
        return entry

    def _bind_id(self, channel_id: int | str, key: ChannelKey) -> None:
        previous = self._by_id.get(channel_id)
        if previous is not None and previous != key:
            # Server reassigned the id; the old binding no longer receives data.
            self._log.warning(
                "channel_id_reassigned",
                channel_id=channel_id,
                previous_symbol=previous[0],
                previous_channel=previous[1].value,
                symbol=key[0],
                channel=key[1].value,
            )
            stale = self._entries.get(previous)
            if stale is not None and stale.channel_id == channel_id:
                stale.channel_id = None
                stale.confirmed = False
        self._by_id[channel_id] = key
