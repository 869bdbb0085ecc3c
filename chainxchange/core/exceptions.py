"""Errors raised by the market-data access layer.

Only data unavailability reaches callers through these; cache-store failures
are absorbed inside the read-through cache and never surface here.
"""

from typing import Optional


class MarketDataError(Exception):
    """Base class for every market-data failure."""


class UpstreamError(MarketDataError):
    """The upstream API call failed (HTTP error, network error, timeout, bad body)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(UpstreamError):
    """The upstream answered 429; ``retry_after`` is its backoff hint in seconds."""

    def __init__(self, message: str, retry_after: float):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class EmptyResponseError(UpstreamError):
    """The upstream answered successfully but with no data."""


class NoDataError(MarketDataError):
    """A read-through fetch produced nothing to return or cache."""


class QueueClosedError(MarketDataError):
    """The request queue was shut down before the task ran."""
