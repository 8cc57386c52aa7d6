"""
x402-compliant payment models for paychat
Attribute names are snake_case; wire names (camelCase) are aliases, and both
are accepted on input. Dump with by_alias=True to get the wire form.
"""

import re
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


X402_VERSION = 1

_DECIMAL_INTEGER = re.compile(r"[0-9]+")


class PaymentExtra(BaseModel):
    """Optional EIP-712 domain overrides supplied by the server"""
    model_config = ConfigDict(extra="allow", frozen=True)

    name: Optional[str] = None
    version: Optional[str] = None


class PaymentRequirements(BaseModel):
    """One acceptable way to pay, as offered in a 402 response"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    scheme: str = Field(default="exact", description="Payment scheme")
    network: str = Field(description="x402 network name, e.g. base-sepolia")
    max_amount_required: str = Field(
        alias="maxAmountRequired",
        description="Amount in token base units, as a decimal integer string"
    )
    pay_to: str = Field(alias="payTo", description="Recipient address")
    asset: str = Field(description="Token contract address")
    max_timeout_seconds: int = Field(alias="maxTimeoutSeconds")
    extra: Optional[PaymentExtra] = None
    resource: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")

    @field_validator("max_amount_required", mode="before")
    @classmethod
    def validate_integer_string(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not _DECIMAL_INTEGER.fullmatch(v):
            raise ValueError("maxAmountRequired must be a non-negative integer string")
        return v

    @property
    def amount(self) -> int:
        """Required amount as an arbitrary-precision integer"""
        return int(self.max_amount_required)


class X402Offer(BaseModel):
    """x402 Payment Required response body (HTTP 402)

    Entries of `accepts` stay raw until one is selected, so a malformed
    later entry never prevents paying with the first one.
    """
    model_config = ConfigDict(populate_by_name=True)

    x402_version: Optional[int] = Field(default=None, alias="x402Version")
    error: Optional[str] = None
    accepts: List[Any] = Field(default_factory=list)


class TransferAuthorization(BaseModel):
    """EIP-3009 TransferWithAuthorization message"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_address: str = Field(alias="from")
    to: str
    value: str
    valid_after: str = Field(alias="validAfter")
    valid_before: str = Field(alias="validBefore")
    nonce: str


class ExactPaymentPayload(BaseModel):
    """Signature plus the authorization it covers"""
    model_config = ConfigDict(frozen=True)

    signature: str
    authorization: TransferAuthorization


class SignedPayment(BaseModel):
    """x402 payment payload submitted in the X-PAYMENT header"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    x402_version: int = Field(default=X402_VERSION, alias="x402Version")
    scheme: str = "exact"
    network: str
    payload: ExactPaymentPayload


class PaymentFailure(BaseModel):
    """Body of a 402 returned for a paid retry"""
    error: Optional[str] = None


class SettlementResponse(BaseModel):
    """Settlement details decoded from the X-PAYMENT-RESPONSE header"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = Field(default=None, alias="errorReason")
