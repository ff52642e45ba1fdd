"""
Request Signing

Signing is a pure function of (path, parameters, api key, secret, nonce):
no hidden state, so a fixed nonce always yields the same signature.

Two protocol versions are supported:

    JSON-RPC (v2):
        HMAC-SHA256(secret, path + "0" + api_key + sorted(key + value) + nonce)

    Form (v1):
        SHA256(sorted(key + value) + secret)
        where the parameters already include api_key and time (the nonce)

Canonical rules shared by both:
    - Keys are sorted lexicographically
    - Parameters whose value is None or "" are skipped entirely
    - Numbers are rendered in plain decimal notation without superfluous
      trailing zeros, so 1.5, 1.50 and Decimal("1.500") serialize alike
"""

import hashlib
import hmac
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping


def canonical_value(value: Any) -> str:
    """
    Render a parameter value the way it appears in the canonical string.

    Examples:
        >>> canonical_value(Decimal("1.50"))
        '1.5'
        >>> canonical_value(1e-7)
        '0.0000001'
        >>> canonical_value(100.0)
        '100'
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # repr() is the shortest string that round-trips, which keeps 0.1 as "0.1"
        value = Decimal(repr(value))
    if isinstance(value, Decimal):
        text = format(value.normalize(), "f")
        return "0" if text in ("-0", "") else text
    return str(value)


def is_blank(value: Any) -> bool:
    """True for values that must not contribute to the canonical string."""
    return value is None or value == ""


def canonical_params(params: Mapping[str, Any]) -> str:
    """
    Concatenate sorted key/value pairs, skipping blank values.

    Example:
        >>> canonical_params({"b": 2, "a": "x", "c": ""})
        'axb2'
    """
    parts = []
    for key in sorted(params):
        value = params[key]
        if is_blank(value):
            continue
        parts.append(f"{key}{canonical_value(value)}")
    return "".join(parts)


def sign_json_rpc(
    path: str,
    params: Mapping[str, Any],
    api_key: str,
    secret: str,
    nonce: int,
    request_id: int = 0
) -> str:
    """
    Hex HMAC-SHA256 signature for the JSON-RPC (v2) API.

    Args:
        path: Method name, e.g. "private/create-order"
        params: Business parameters (unsorted)
        api_key: Caller's API key
        secret: Shared secret used as HMAC key
        nonce: Milliseconds since epoch
        request_id: The request "id" field (always 0 for this client)
    """
    payload = f"{path}{request_id}{api_key}{canonical_params(params)}{nonce}"
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_form(params: Mapping[str, Any], secret: str) -> str:
    """
    Hex SHA-256 signature for the form-encoded (v1) API.

    The caller must already have added api_key and time to params.
    """
    payload = f"{canonical_params(params)}{secret}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
