"""marketfeed -- streaming market-data client for exchange websockets."""

from marketfeed.errors import (
    FeedError,
    NotConnectedError,
    ProtocolError,
    SubscriptionValidationError,
    TransportError,
)
from marketfeed.ingestion import ConnectionState, FeedClient
from marketfeed.models import ChannelType, EventKind

__version__ = "0.1.0"

__all__ = [
    "ChannelType",
    "ConnectionState",
    "EventKind",
    "FeedClient",
    "FeedError",
    "NotConnectedError",
    "ProtocolError",
    "SubscriptionValidationError",
    "TransportError",
]
