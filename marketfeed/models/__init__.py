from .subscription import ChannelType, EventKind, SubscriptionRequest
from .messages import (
    ChannelUpdate,
    DecodedMessage,
    Heartbeat,
    Pong,
    SubscriptionStatus,
    SystemStatus,
    UnknownEvent,
)

__all__ = [
    "ChannelType",
    "EventKind",
    "SubscriptionRequest",
    "ChannelUpdate",
    "DecodedMessage",
    "Heartbeat",
    "Pong",
    "SubscriptionStatus",
    "SystemStatus",
    "UnknownEvent",
]
