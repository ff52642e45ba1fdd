"""
Request Dispatcher

Orchestrates one logical API call:

    pace -> (sign, POST only) -> transmit -> interpret -> retry on 429 -> payload

Retry policy:
    - HTTP 429: the pacer enters cooldown and the whole call is repeated
      (re-paced, re-signed with a fresh nonce, retransmitted). Unbounded by
      default; settings.max_rate_limit_retries bounds it.
    - Everything else (connection errors, timeouts, application errors)
      is raised immediately.

Retrying a POST after 429 can submit an order twice if the exchange
processed the first request anyway. No idempotency key is added.
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import aiohttp

from core.errors import (
    APIError,
    HTTPStatusError,
    MissingCredentialsError,
    RateLimitExceededError,
    ResponseDecodeError,
    TransportError,
)
from core.logging import get_logger, log_api_request, log_api_response
from core.pacer import RateLimitHooks, get_default_pacer
from core.protocol import ProtocolVariant
from core.signer import canonical_value, is_blank
from core.utils.time import current_utc_timestamp


HTTP_TOO_MANY_REQUESTS = 429


def encode_query(params: Optional[Dict[str, Any]]) -> str:
    """Sorted, canonical query string; blank values are dropped."""
    if not params:
        return ""
    return urlencode(sorted(
        (key, canonical_value(value)) for key, value in params.items() if not is_blank(value)
    ))


class Dispatcher:
    """
    Sends requests for one protocol variant through a shared pacer.

    Attributes:
        session: aiohttp ClientSession (owned by the caller)
        variant: ProtocolVariant describing signing and envelopes
        base_url: API root, ending with "/"
        pacer: RateLimitHooks implementation driving the pacing
        timeout: Overall transport timeout in seconds
        max_rate_limit_retries: None for unbounded retries on 429
        nonce_factory: Returns the millisecond nonce for signed calls
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        variant: ProtocolVariant,
        base_url: str,
        api_key: str = "",
        secret_key: str = "",
        pacer: Optional[RateLimitHooks] = None,
        timeout: float = 30,
        max_rate_limit_retries: Optional[int] = None,
        nonce_factory=None,
        exchange: str = "cryptocom"
    ):
        self.session = session
        self.variant = variant
        self.base_url = base_url
        self.api_key = api_key
        self.secret_key = secret_key
        self.pacer = pacer or get_default_pacer()
        self.timeout = timeout
        self.max_rate_limit_retries = max_rate_limit_retries
        self.nonce_factory = nonce_factory or (lambda: current_utc_timestamp(milliseconds=True))
        self.exchange = exchange
        self.logger = get_logger(__name__)

    async def call(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        requests_per_second: float = 0
    ) -> Any:
        """
        Perform one logical call and return the envelope payload.

        GET requests carry params in the query string and are not signed.
        POST requests are signed and carry params in the body.

        Args:
            method: "GET" or "POST"
            path: Endpoint path relative to base_url (e.g. "public/get-book")
            params: Business parameters
            requests_per_second: Per-call rate override (0 = normal rate)

        Returns:
            The payload member of the response envelope

        Raises:
            MissingCredentialsError: POST without api key / secret
            TransportError: Connection failure or timeout
            APIError: Error envelope from the exchange
            HTTPStatusError: Non-2xx response without error envelope
            ResponseDecodeError: Body is not a JSON object
            RateLimitExceededError: 429 persisted past the retry bound
        """
        method = method.upper()
        params = dict(params or {})

        if method == "POST" and not (self.api_key and self.secret_key):
            raise MissingCredentialsError(
                f"POST {path} requires an API key and secret", method, path, params
            )

        rejections = 0
        while True:
            status, reason, raw = await self._attempt(method, path, params, requests_per_second)
            if status != HTTP_TOO_MANY_REQUESTS:
                return self._interpret(method, path, params, status, reason, raw)

            rejections += 1
            if self.max_rate_limit_retries is not None and rejections > self.max_rate_limit_retries:
                raise RateLimitExceededError(method, path, rejections, params)
            self.logger.warning(
                f"{method} {path} rejected with HTTP 429, retrying (attempt {rejections + 1})"
            )

    async def _attempt(
        self,
        method: str,
        path: str,
        params: Dict[str, Any],
        requests_per_second: float
    ) -> Tuple[int, str, bytes]:
        """
        One paced round-trip. Returns (status, reason, raw body).

        The cooldown hook fires from inside the paced section so the
        rejected attempt is still recorded by after_request.
        """
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {"timeout": aiohttp.ClientTimeout(total=self.timeout)}

        async with self.pacer.pace(method, path, requests_per_second):
            if method == "GET":
                query = encode_query(params)
                if query:
                    url = f"{url}?{query}"
            else:
                body = self.variant.signed_body(
                    path, params, self.api_key, self.secret_key, self.nonce_factory()
                )
                if self.variant.body_encoding == "json":
                    kwargs["data"] = json.dumps(body)
                    kwargs["headers"] = {"Content-Type": "application/json"}
                else:
                    kwargs["data"] = body

            log_api_request(self.exchange, method, path, params)
            started = time.monotonic()
            try:
                async with self.session.request(method, url, **kwargs) as resp:
                    status = resp.status
                    reason = resp.reason or ""
                    raw = await resp.read()
            except asyncio.TimeoutError as e:
                raise TransportError(
                    f"{method} {path} timed out after {self.timeout}s", method, path, params
                ) from e
            except aiohttp.ClientError as e:
                raise TransportError(f"{method} {path} failed: {e}", method, path, params) from e
            log_api_response(self.exchange, method, path, status, time.monotonic() - started)

            if status == HTTP_TOO_MANY_REQUESTS:
                await self.pacer.on_rate_limit_error(method, path)

        return status, reason, raw

    def _interpret(
        self,
        method: str,
        path: str,
        params: Dict[str, Any],
        status: int,
        reason: str,
        raw: bytes
    ) -> Any:
        """
        Turn a non-429 response into a payload or an exception.

        An error envelope wins over the HTTP status, so a 400 that carries
        {"code": 10004, "message": "BAD_REQUEST"} reports BAD_REQUEST.
        """
        decode_error = None
        try:
            body = json.loads(raw) if raw else None
        except ValueError as e:
            body = None
            decode_error = e

        if isinstance(body, dict):
            message = self.variant.error_message(body)
            if message is not None:
                query = encode_query(params) if method == "GET" else None
                error = APIError(method, path, body.get("code"), message, params, query)
                self.logger.error(str(error))
                raise error

        if status < 200 or status >= 300:
            query = encode_query(params) if method == "GET" else None
            raise HTTPStatusError(method, path, status, reason, params, query)

        if decode_error is not None:
            raise ResponseDecodeError(
                f"{method} {path} returned invalid JSON: {decode_error}", method, path, params
            ) from decode_error

        if not isinstance(body, dict):
            raise ResponseDecodeError(
                f"{method} {path} returned {type(body).__name__}, expected an object",
                method, path, params
            )

        return self.variant.parse_envelope(body).payload
