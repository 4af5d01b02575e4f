"""Correlation ids for outbound requests."""

from __future__ import annotations


class RequestIdGenerator:
    """Strictly increasing request ids, starting at 1.

    Not thread-safe on its own; FeedClient only calls ``next()`` while holding
    its outbound lock.
    """

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        """The last id handed out, or 0 if none yet."""
        return self._current

    def next(self) -> int:
        self._current += 1
        return self._current
