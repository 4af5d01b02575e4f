"""Decoded inbound messages, the contract between wire formats and the dispatcher.

Every frame decodes to exactly one of these models. They are frozen and carry
only the fields downstream handlers need, never a reference to the socket.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from .subscription import ChannelType


class Heartbeat(BaseModel):
    kind: Literal["heartbeat"] = "heartbeat"

    model_config = {"frozen": True}


class Pong(BaseModel):
    kind: Literal["pong"] = "pong"
    request_id: int | None = None
    raw: Any = None

    model_config = {"frozen": True}


class SubscriptionStatus(BaseModel):
    """Acknowledgment (or rejection) of a subscribe request."""

    kind: Literal["subscriptionStatus"] = "subscriptionStatus"
    status: str
    symbol: str | None = None
    channel_type: ChannelType | None = None
    channel_name: str | None = None
    interval: str | None = None
    channel_id: int | str | None = None
    request_id: int | None = None
    error_message: str | None = None
    subscription: dict[str, Any] | None = None

    model_config = {"frozen": True}

    @property
    def is_error(self) -> bool:
        return self.status == "error"


class SystemStatus(BaseModel):
    kind: Literal["systemStatus"] = "systemStatus"
    version: str | None = None
    status: str | None = None
    connection_id: int | str | None = None

    model_config = {"frozen": True}


class ChannelUpdate(BaseModel):
    """A market-data update on a subscribed channel."""

    kind: Literal["channelUpdate"] = "channelUpdate"
    channel_id: int | str | None
    channel_name: str = Field(description="Combined name, e.g. 'ohlc-5' or 'ticker'")
    symbol: str
    channel_type: ChannelType
    interval: str | None = None
    payload: Any = None

    model_config = {"frozen": True}


class UnknownEvent(BaseModel):
    kind: Literal["unknown"] = "unknown"
    raw: Any = None
    reason: str = "unknown_event"

    model_config = {"frozen": True}


DecodedMessage = Annotated[
    Union[Heartbeat, Pong, SubscriptionStatus, SystemStatus, ChannelUpdate, UnknownEvent],
    Field(discriminator="kind"),
]
