"""
Header codecs for x402
X-PAYMENT and X-PAYMENT-RESPONSE carry base64 (standard alphabet, no line
wraps) of UTF-8 JSON.
"""

import base64
from typing import Optional

import httpx

from paychat.payments.models import SettlementResponse, SignedPayment

PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"


def encode_payment_header(signed_payment: SignedPayment) -> str:
    """Encode SignedPayment as base64 for the X-PAYMENT header"""
    return base64.b64encode(
        signed_payment.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    ).decode("ascii")


def decode_payment_header(encoded: str) -> SignedPayment:
    """Decode base64 SignedPayment from the X-PAYMENT header"""
    decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    return SignedPayment.model_validate_json(decoded)


def decode_payment_response(response: httpx.Response) -> Optional[SettlementResponse]:
    """
    Settlement details from a paid response, if the server sent any.

    Raises:
        ValueError: The header is not strict base64 of a SettlementResponse
            (binascii.Error and pydantic.ValidationError are both ValueErrors)
    """
    encoded = response.headers.get(PAYMENT_RESPONSE_HEADER)
    if not encoded:
        return None
    decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    return SettlementResponse.model_validate_json(decoded)
