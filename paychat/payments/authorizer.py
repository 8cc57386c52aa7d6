"""
EIP-3009 payment authorization for x402
Builds and signs a time-bounded TransferWithAuthorization for one offer
"""

import secrets
import time
from typing import Any, Callable, Dict

import structlog

from paychat.payments.errors import SigningFailed, UnsupportedNetwork
from paychat.payments.models import (
    ExactPaymentPayload,
    PaymentRequirements,
    SignedPayment,
    TransferAuthorization,
    X402_VERSION,
)
from paychat.payments.networks import DEFAULT_USDC_VERSION, NetworkConfig, get_network
from paychat.payments.signer import Signer

logger = structlog.get_logger()

# Authorizations become valid 10 minutes in the past to absorb clock skew
VALIDITY_BUFFER_SECONDS = 600

NONCE_BYTES = 32

AUTHORIZATION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


def create_nonce(random_bytes: Callable[[int], bytes] = secrets.token_bytes) -> str:
    """Random 32-byte nonce as 0x-prefixed, zero-padded lowercase hex"""
    raw = random_bytes(NONCE_BYTES)
    return "0x" + "".join(f"{b:02x}" for b in raw)


class PaymentAuthorizer:
    """
    Signs x402 "exact" scheme payments.

    The clock and the random source are injectable so tests can pin the
    validity window and the nonce.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        self.clock = clock
        self.random_bytes = random_bytes

    async def authorize(
        self,
        account: str,
        signer: Signer,
        requirements: PaymentRequirements,
    ) -> SignedPayment:
        """
        Create a signed payment for the given offer.

        Args:
            account: Payer address
            signer: Signing capability for that address
            requirements: Offer selected from the 402 response

        Returns:
            SignedPayment ready for header encoding

        Raises:
            UnsupportedNetwork: No chain configuration for requirements.network
            SigningFailed: The signer raised or rejected the request
        """
        config = get_network(requirements.network)
        if config is None:
            raise UnsupportedNetwork(requirements.network)

        nonce = create_nonce(self.random_bytes)
        now = int(self.clock())

        authorization = TransferAuthorization(
            from_address=account,
            to=requirements.pay_to,
            value=requirements.max_amount_required,
            valid_after=str(now - VALIDITY_BUFFER_SECONDS),
            valid_before=str(now + requirements.max_timeout_seconds),
            nonce=nonce,
        )

        typed_data = self.build_typed_data(requirements, authorization, config)

        try:
            signature = await signer.sign_typed_data(typed_data)
        except Exception as e:
            logger.warning(
                "payment_signing_failed",
                network=requirements.network,
                error=str(e),
            )
            raise SigningFailed(e) from e

        logger.info(
            "payment_authorized",
            network=requirements.network,
            pay_to=requirements.pay_to,
            value=requirements.max_amount_required,
            valid_before=authorization.valid_before,
        )

        return SignedPayment(
            x402_version=X402_VERSION,
            scheme="exact",
            network=requirements.network,
            payload=ExactPaymentPayload(
                signature=signature,
                authorization=authorization,
            ),
        )

    @staticmethod
    def build_typed_data(
        requirements: PaymentRequirements,
        authorization: TransferAuthorization,
        config: NetworkConfig,
    ) -> Dict[str, Any]:
        """EIP-712 document for a TransferWithAuthorization on the given chain"""
        extra = requirements.extra
        return {
            "types": AUTHORIZATION_TYPES,
            "primaryType": "TransferWithAuthorization",
            "domain": {
                "name": (extra and extra.name) or config.usdc_name,
                "version": (extra and extra.version) or DEFAULT_USDC_VERSION,
                "chainId": config.chain_id,
                "verifyingContract": requirements.asset,
            },
            "message": authorization.model_dump(by_alias=True),
        }
