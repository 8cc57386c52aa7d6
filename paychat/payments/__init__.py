"""
paychat Payment Module
x402 client: pay-and-retry over httpx with EIP-3009 authorizations
"""

from paychat.payments.models import (
    PaymentRequirements,
    PaymentExtra,
    X402Offer,
    TransferAuthorization,
    ExactPaymentPayload,
    SignedPayment,
    PaymentFailure,
    SettlementResponse,
)
from paychat.payments.errors import (
    PaymentError,
    NoPaymentOptions,
    PaymentRequirementsMissing,
    PaymentAmountExceeded,
    UnsupportedNetwork,
    SigningFailed,
    PaymentFailed,
    InsufficientBalance,
    PaymentProcessingFailed,
)
from paychat.payments.networks import NetworkConfig, NETWORKS, get_network
from paychat.payments.signer import Signer, LocalAccountSigner
from paychat.payments.authorizer import PaymentAuthorizer, create_nonce
from paychat.payments.encoding import (
    encode_payment_header,
    decode_payment_header,
    decode_payment_response,
)
from paychat.payments.client import (
    PaymentRetryClient,
    RequestInit,
    RetryState,
    wrap_with_payment,
    DEFAULT_MAX_PAYMENT_AMOUNT,
)

__all__ = [
    "PaymentRequirements",
    "PaymentExtra",
    "X402Offer",
    "TransferAuthorization",
    "ExactPaymentPayload",
    "SignedPayment",
    "PaymentFailure",
    "SettlementResponse",
    "PaymentError",
    "NoPaymentOptions",
    "PaymentRequirementsMissing",
    "PaymentAmountExceeded",
    "UnsupportedNetwork",
    "SigningFailed",
    "PaymentFailed",
    "InsufficientBalance",
    "PaymentProcessingFailed",
    "NetworkConfig",
    "NETWORKS",
    "get_network",
    "Signer",
    "LocalAccountSigner",
    "PaymentAuthorizer",
    "create_nonce",
    "encode_payment_header",
    "decode_payment_header",
    "decode_payment_response",
    "PaymentRetryClient",
    "RequestInit",
    "RetryState",
    "wrap_with_payment",
    "DEFAULT_MAX_PAYMENT_AMOUNT",
]
