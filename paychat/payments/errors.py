"""
Payment error taxonomy for the x402 client
Every failure of the pay-and-retry cycle surfaces as a PaymentError subclass,
except transport errors, which are httpx.HTTPError and propagate unchanged.
"""

from typing import Optional


class PaymentError(Exception):
    """Base class for x402 client payment failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoPaymentOptions(PaymentError):
    """402 response carried no usable `accepts` list"""

    def __init__(self):
        super().__init__("No payment options available")


class PaymentRequirementsMissing(PaymentError):
    """Selected offer entry was absent"""

    def __init__(self):
        super().__init__("Payment requirements undefined")


class PaymentAmountExceeded(PaymentError):
    """Offer asks for more than the caller's ceiling"""

    def __init__(self, required: int, allowed: int):
        super().__init__(
            f"Payment amount ({required}) exceeds maximum allowed ({allowed})"
        )
        self.required = required
        self.allowed = allowed


class UnsupportedNetwork(PaymentError):
    """Offer names a network with no known chain configuration"""

    def __init__(self, network: str):
        super().__init__(f"Unsupported network: {network}")
        self.network = network


class SigningFailed(PaymentError):
    """Signer rejected or errored while signing the authorization"""

    def __init__(self, cause: BaseException):
        super().__init__(f"Signing failed: {cause}")
        self.cause = cause


class PaymentFailed(PaymentError):
    """Server rejected the paid retry with another 402"""

    def __init__(self, server_message: Optional[str] = None):
        self.server_message = server_message or "Unknown error"
        super().__init__(f"Payment failed: {self.server_message}")


class InsufficientBalance(PaymentError):
    """Payer does not hold enough of the asset"""

    def __init__(self):
        super().__init__("Insufficient USDC balance to make payment")


class PaymentProcessingFailed(PaymentError):
    """Unexpected failure while processing a payment"""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("Failed to process payment")
        self.cause = cause
