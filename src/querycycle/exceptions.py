"""Custom exception hierarchy for querycycle."""

from __future__ import annotations

from typing import Any


class QueryCycleError(Exception):
    """Base exception for all querycycle errors."""


class QueryConfigError(QueryCycleError):
    """Invalid options or configuration.

    Raised to the caller of :meth:`QueryManager.request` before anything is
    merged, so stored options never end up half-updated.
    """


class QueryTransportError(QueryCycleError):
    """Transport-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class QueryPayloadError(QueryCycleError):
    """Transport resolved with a payload that carries an error field."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)


class QueryCancelledError(QueryCycleError):
    """A transport call observed that its cancellation token was signalled."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or "Query cancelled")
