"""Errors raised by api-courier.

Everything raised on purpose derives from ApiCourierError so callers can
catch the whole family with one clause. Nothing here is retried; the only
retry-like behaviour in the library is redirect following, which is bounded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


class ApiCourierError(Exception):
    """Base class for api-courier errors."""


class ConfigurationError(ApiCourierError, ValueError):
    """Raised before any network activity when request options are invalid."""


class RedirectionTooDeepError(ApiCourierError):
    """Raised when a redirect chain exceeds the configured hop limit.

    The last redirect response is attached so callers can inspect where the
    chain was heading when it was cut off.
    """

    def __init__(self, response: httpx.Response | None, limit: int) -> None:
        self.response = response
        self.limit = limit
        location = response.headers.get("location") if response is not None else None
        super().__init__(
            f"HTTP redirects too deep (limit {limit}, last location: {location!r})"
        )


# The redirect loop error is the same thing under its descriptive name.
RedirectLoopError = RedirectionTooDeepError


class TransportError(ApiCourierError):
    """Raised when the transport fails (connection error, TLS, timeout, etc.)."""


class ParseError(ApiCourierError):
    """Raised when a body cannot be decoded for its resolved format."""

    def __init__(self, message: str, format: str | None = None) -> None:
        self.format = format
        super().__init__(message)


class AuthenticationError(ApiCourierError):
    """Raised when digest authentication cannot obtain a usable challenge."""
