"""Exception types raised by the feed client."""

from __future__ import annotations

from typing import Any


class FeedError(Exception):
    """Base class for all marketfeed errors."""


class SubscriptionValidationError(FeedError, ValueError):
    """A subscribe call was rejected before anything was sent."""


class NotConnectedError(FeedError):
    """An outbound request was attempted while the connection is not open."""


class TransportError(FeedError):
    """The websocket could not be opened or closed abnormally."""


class ProtocolError(FeedError):
    """The exchange answered a request with an explicit error object."""

    def __init__(
        self,
        message: str | None,
        *,
        code: int | str | None = None,
        request_id: int | None = None,
        raw: Any = None,
    ) -> None:
        super().__init__(message or "exchange reported an error")
        self.code = code
        self.message = message
        self.request_id = request_id
        self.raw = raw

    def __repr__(self) -> str:
        return (
            f"ProtocolError(code={self.code!r}, message={self.message!r}, "
            f"request_id={self.request_id!r})"
        )
