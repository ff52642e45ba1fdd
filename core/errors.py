"""
Exception hierarchy for exchange REST calls.

Every error carries enough context (HTTP method, path, parameters) to
reproduce the failing call. Rate-limit rejections are handled inside the
dispatcher and only surface as RateLimitExceededError when a retry bound
is configured.
"""

from typing import Any, Dict, Optional


class ExchangeError(Exception):
    """Base class for all exchange-related errors."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.method = method
        self.path = path
        self.params = params or {}


def describe_call(method: str, path: str, query: Optional[str] = None) -> str:
    """Render "GET path?query" (query only for GET) or "POST path"."""
    if method == "GET" and query:
        return f"{method} {path}?{query}"
    return f"{method} {path}"


class TransportError(ExchangeError):
    """Connection failure or timeout. Not retried by the dispatcher."""


class RateLimitExceededError(ExchangeError):
    """HTTP 429 persisted past the configured retry bound."""

    def __init__(self, method: str, path: str, attempts: int, params: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"{describe_call(method, path)} still rate limited after {attempts} attempts",
            method, path, params
        )
        self.attempts = attempts


class HTTPStatusError(ExchangeError):
    """Non-2xx response that did not carry an application error envelope."""

    def __init__(
        self,
        method: str,
        path: str,
        status: int,
        reason: str,
        params: Optional[Dict[str, Any]] = None,
        query: Optional[str] = None
    ):
        super().__init__(f"{describe_call(method, path, query)} {status} {reason}".rstrip(), method, path, params)
        self.status = status
        self.reason = reason


class APIError(ExchangeError):
    """
    Application-level failure reported inside the response envelope.

    The exchange may answer HTTP 200 with a non-zero code; that is still a
    failed call.

    Attributes:
        code: Exchange-defined status code
        message: Human-readable detail from the envelope
        query: Encoded query string (GET only)
    """

    def __init__(
        self,
        method: str,
        path: str,
        code: Any,
        message: str,
        params: Optional[Dict[str, Any]] = None,
        query: Optional[str] = None
    ):
        super().__init__(f"{describe_call(method, path, query)} {message}", method, path, params)
        self.code = code
        self.message = message
        self.query = query


class ResponseDecodeError(ExchangeError):
    """Response body is not valid JSON or has an unexpected shape."""


class NotFoundError(ExchangeError, LookupError):
    """A lookup for a single symbol or asset came back empty."""

    def __init__(self, name: str):
        super().__init__(f"{name} does not exist")
        self.name = name


class MissingCredentialsError(ExchangeError):
    """A private endpoint was called without an API key and secret."""


class OrderError(ExchangeError):
    """
    The exchange accepted an order but it ended up rejected or expired.

    Attributes:
        order_id: Identifier assigned by the exchange
    """

    def __init__(self, order_id: str, message: str):
        super().__init__(message)
        self.order_id = order_id
