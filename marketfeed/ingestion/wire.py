"""Per-exchange wire formats: inbound decoding and outbound request encoding."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from marketfeed.errors import SubscriptionValidationError
from marketfeed.models import ChannelType, DecodedMessage, SubscriptionRequest


class WireFormat(ABC):
    """Everything exchange-specific about talking to one websocket API.

    ``decode`` never raises for an unrecognised message; it returns
    ``UnknownEvent``. It raises ``ProtocolError`` only when the exchange sent
    an explicit error object.
    """

    name: str = ""
    channel_types: frozenset[ChannelType] = frozenset()

    @abstractmethod
    def decode(self, msg: Any) -> DecodedMessage:
        ...

    @abstractmethod
    def encode_subscribe(self, request: SubscriptionRequest, request_id: int) -> dict[str, Any]:
        ...

    @abstractmethod
    def encode_ping(self, request_id: int) -> dict[str, Any]:
        ...

    def validate_channel(self, channel_type: str | ChannelType) -> ChannelType:
        """Return the ChannelType for ``channel_type`` or raise if unsupported here."""
        try:
            ctype = ChannelType(channel_type)
        except ValueError:
            ctype = None
        if ctype is None or ctype not in self.channel_types:
            allowed = ", ".join(sorted(c.value for c in self.channel_types))
            raise SubscriptionValidationError(
                f"channel {channel_type!r} is not supported on {self.name} (expected one of: {allowed})"
            )
        return ctype

    def normalize_symbol(self, symbol: str) -> str:
        return symbol

    def tentative_channel_id(self, symbol: str, request: SubscriptionRequest) -> int | str | None:
        """Channel id known before the server replies, if the protocol has one."""
        return None


def get_wire_format(name: str) -> WireFormat:
    """Instantiate the wire format registered under ``name``."""
    from marketfeed.ingestion.binance import BinanceWireFormat
    from marketfeed.ingestion.kraken import KrakenWireFormat

    formats: dict[str, type[WireFormat]] = {
        KrakenWireFormat.name: KrakenWireFormat,
        BinanceWireFormat.name: BinanceWireFormat,
    }
    try:
        return formats[name.lower()]()
    except KeyError:
        raise ValueError(
            f"unknown exchange {name!r} (expected one of: {', '.join(sorted(formats))})"
        ) from None
