"""
Protocol Variants

The exchange exposes structurally similar but incompatible API versions.
Instead of duplicating the request machinery per version, the Dispatcher
is parameterized by a ProtocolVariant describing:

- how signed fields are attached to a private request (JSON body or form)
- which signature algorithm and field order is used
- the response envelope shape and how success is recognized

Envelope families:
    JSON-RPC (v2): {"code": 0, "message"|"details": "...", "result": {...}}
    Form (v1):     {"code": "0", "msg": "suc", "data": {...}}
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from core.signer import canonical_value, is_blank, sign_form, sign_json_rpc


class ResponseEnvelope(BaseModel):
    """
    Outer structure of every response, reduced to what the dispatcher needs.

    Attributes:
        code: Exchange-defined status code (None when absent)
        message: Human-readable detail, present on failure
        payload: The result/data member handed to the caller
        success: Whether the variant considers this a successful call
    """

    code: Any = Field(default=None)
    message: Optional[str] = Field(default=None)
    payload: Any = Field(default=None)
    success: bool = Field(default=True)


def to_jsonable(value: Any) -> Any:
    """
    Convert enums and Decimals so json.dumps accepts the body.

    The signature covers the exact decimal digits, so a Decimal that a
    float cannot carry unchanged is refused instead of being rounded.

    Raises:
        ValueError: Decimal with more precision than a JSON float keeps
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        as_float = float(value)
        if canonical_value(as_float) != canonical_value(value):
            raise ValueError(
                f"{value} cannot be sent as a JSON number without losing precision"
            )
        return as_float
    return value


class ProtocolVariant(ABC):
    """
    Per-version protocol configuration.

    Attributes:
        name: Short identifier used in logs ("v1", "v2")
        body_encoding: "json" or "form" for signed POST bodies
    """

    name: str
    body_encoding: str

    @abstractmethod
    def signed_body(
        self,
        path: str,
        params: Dict[str, Any],
        api_key: str,
        secret: str,
        nonce: int
    ) -> Dict[str, Any]:
        """Build the complete body of an authenticated request."""

    @abstractmethod
    def parse_envelope(self, body: Dict[str, Any]) -> ResponseEnvelope:
        """Interpret a decoded JSON object."""

    def error_message(self, body: Dict[str, Any]) -> Optional[str]:
        """
        Return the failure message if the body is an error envelope.

        Only bodies that carry a code are considered; anything else is left
        to the HTTP status check.
        """
        if "code" not in body:
            return None
        envelope = self.parse_envelope(body)
        if envelope.success:
            return None
        return envelope.message if envelope.message is not None else str(envelope.code)


class JsonRpcVariant(ProtocolVariant):
    """
    JSON-RPC style API (v2).

    Signed request body:
        {"id": 0, "method": path, "api_key": ..., "params": {...}, "sig": ..., "nonce": ...}
    """

    name = "v2"
    body_encoding = "json"
    request_id = 0

    def signed_body(self, path, params, api_key, secret, nonce):
        sig = sign_json_rpc(path, params, api_key, secret, nonce, self.request_id)
        return {
            "id": self.request_id,
            "method": path,
            "api_key": api_key,
            "params": {k: to_jsonable(v) for k, v in params.items() if not is_blank(v)},
            "sig": sig,
            "nonce": nonce,
        }

    def parse_envelope(self, body):
        code = body.get("code")
        if "details" in body:
            message = str(body["details"])
        elif "message" in body:
            message = str(body["message"])
        else:
            message = None
        return ResponseEnvelope(
            code=code,
            message=message,
            payload=body.get("result"),
            success=code is None or code == 0 or code == "0",
        )


class FormVariant(ProtocolVariant):
    """
    Form-encoded API (v1).

    Signed request body: business params + api_key + time + sign.
    """

    name = "v1"
    body_encoding = "form"
    success_token = "suc"

    def signed_body(self, path, params, api_key, secret, nonce):
        fields = {k: v for k, v in params.items() if not is_blank(v)}
        fields["api_key"] = api_key
        fields["time"] = nonce
        fields["sign"] = sign_form(fields, secret)
        # the exchange re-signs what it receives, so values go out canonical
        return {k: canonical_value(v) for k, v in fields.items()}

    def parse_envelope(self, body):
        code = body.get("code")
        message = body.get("msg")
        success = code in (None, 0, "0") or message == self.success_token
        return ResponseEnvelope(
            code=code,
            message=None if message is None else str(message),
            payload=body.get("data"),
            success=success,
        )


JSON_RPC = JsonRpcVariant()
FORM = FormVariant()
