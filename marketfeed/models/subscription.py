"""Channel and event names, and the subscription request model."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ChannelType(str, Enum):
    """Public market-data channels. Each exchange supports a subset."""

    TICKER = "ticker"
    OHLC = "ohlc"
    TRADE = "trade"
    SPREAD = "spread"
    BOOK = "book"
    KLINE = "kline"  # Binance candlesticks


class EventKind(str, Enum):
    """System events that always have a handler registered."""

    HEARTBEAT = "heartbeat"
    PONG = "pong"
    SUBSCRIPTION_STATUS = "subscriptionStatus"
    SYSTEM_STATUS = "systemStatus"
    ERROR = "error"


class SubscriptionRequest(BaseModel):
    """One subscribe call: a set of symbols on a single channel."""

    symbols: tuple[str, ...] = Field(min_length=1)
    channel_type: ChannelType
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("symbols", mode="before")
    @classmethod
    def _wrap_single_symbol(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @property
    def interval(self) -> Any:
        return self.params.get("interval")
