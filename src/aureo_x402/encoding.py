import base64
import binascii
import json
from typing import Any, Union

from pydantic import BaseModel, ValidationError

from aureo_x402.errors import InvalidFormatError
from aureo_x402.types import PaymentPayload, PaymentRequirement, SettleResponse


def safe_base64_encode(data: Union[str, bytes]) -> str:
    """Safely encode string or bytes to base64 string.

    Args:
        data: String or bytes to encode

    Returns:
        Base64 encoded string
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("utf-8")


def safe_base64_decode(data: str) -> str:
    """Strictly decode a base64 string to a utf-8 string.

    Args:
        data: Base64 encoded string

    Returns:
        Decoded utf-8 string

    Raises:
        InvalidFormatError: If the input is not valid base64 or not utf-8
    """
    try:
        return base64.b64decode(data, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
        raise InvalidFormatError(f"Invalid base64 header: {e}") from e


def canonical_json(data: Any) -> str:
    """Serialize with sorted keys and no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _encode_model(model: BaseModel) -> str:
    data = model.model_dump(by_alias=True, exclude_none=True, mode="json")
    return safe_base64_encode(canonical_json(data))


def _decode_model(header: str, model_cls: type[BaseModel], label: str):
    if not isinstance(header, str) or not header.strip():
        raise InvalidFormatError(f"Empty {label} header")
    json_str = safe_base64_decode(header.strip())
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise InvalidFormatError(f"Invalid {label} JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidFormatError(f"Invalid {label}: expected a JSON object")
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise InvalidFormatError(f"Invalid {label}: {e.error_count()} validation error(s)") from e


def encode_requirement(requirement: PaymentRequirement) -> str:
    """Encode a payment requirement to the X-PAYMENT-REQUIRED header value."""
    return _encode_model(requirement)


def decode_requirement(header: str) -> PaymentRequirement:
    """Decode an X-PAYMENT-REQUIRED header value.

    Raises:
        InvalidFormatError: The header is not a well-formed requirement. No
            partially-populated requirement is ever returned.
    """
    return _decode_model(header, PaymentRequirement, "payment requirement")


def encode_payment(payment: PaymentPayload) -> str:
    """Encode a signed payment to the X-PAYMENT header value."""
    return _encode_model(payment)


def decode_payment(header: str) -> PaymentPayload:
    """Decode an X-PAYMENT header value.

    Raises:
        InvalidFormatError: The header is not a well-formed payment.
    """
    return _decode_model(header, PaymentPayload, "payment")


def encode_settlement_response(settlement: SettleResponse) -> str:
    """Encode a settlement outcome to the X-PAYMENT-RESPONSE header value."""
    return _encode_model(settlement)


def decode_settlement_response(header: str) -> SettleResponse:
    """Decode the X-PAYMENT-RESPONSE header.

    The decoded payment response contains:
        - success: bool
        - transaction: str (hex)
        - network: str
        - payer: str (address)
    """
    return _decode_model(header, SettleResponse, "payment response")
