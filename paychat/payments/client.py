"""
Pay-capable HTTP client for the x402 protocol
Wraps an httpx.AsyncClient: a 402 Payment Required response is answered with
a signed authorization and the request is retried exactly once.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
import structlog
from pydantic import ValidationError

from paychat.payments.authorizer import PaymentAuthorizer
from paychat.payments.encoding import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    encode_payment_header,
)
from paychat.payments.errors import (
    InsufficientBalance,
    NoPaymentOptions,
    PaymentAmountExceeded,
    PaymentError,
    PaymentFailed,
    PaymentProcessingFailed,
    PaymentRequirementsMissing,
)
from paychat.payments.models import PaymentFailure, PaymentRequirements, X402Offer
from paychat.payments.signer import Signer

logger = structlog.get_logger()

PAYMENT_REQUIRED = 402

# 0.1 USDC in base units
DEFAULT_MAX_PAYMENT_AMOUNT = 100_000


class RetryState(Enum):
    """Lifecycle states for one pay-capable request"""
    INITIAL = "initial"                     # Nothing sent yet
    AWAITING_PAYMENT = "awaiting_payment"   # Got 402, selecting/signing
    RETRIED = "retried"                     # Paid retry sent
    DONE = "done"                           # Final response returned
    FAILED = "failed"                       # Raised to the caller


ALLOWED_TRANSITIONS = {
    RetryState.INITIAL: {RetryState.AWAITING_PAYMENT, RetryState.DONE, RetryState.FAILED},
    RetryState.AWAITING_PAYMENT: {RetryState.RETRIED, RetryState.FAILED},
    RetryState.RETRIED: {RetryState.DONE, RetryState.FAILED},
    RetryState.DONE: set(),
    RetryState.FAILED: set(),
}


@dataclass
class RequestInit:
    """Method, headers and body of a request, reused verbatim on retry"""
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[Union[str, bytes]] = None
    json_body: Optional[Any] = None


@dataclass
class PaymentAttempt:
    """Per-call state; never shared between calls"""
    url: str
    state: RetryState = RetryState.INITIAL
    history: List[RetryState] = field(default_factory=lambda: [RetryState.INITIAL])

    def transition(self, new_state: RetryState) -> None:
        """Move to new_state, rejecting anything outside ALLOWED_TRANSITIONS"""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid payment state transition {self.state.value} -> {new_state.value}"
            )
        old_state = self.state
        self.state = new_state
        self.history.append(new_state)
        logger.debug(
            "payment_state_transition",
            url=self.url,
            from_state=old_state.value,
            to_state=new_state.value,
        )


def normalize_payment_error(error: Exception) -> Exception:
    """
    Map a failure of the sign-and-retry stage to what the caller sees.

    Anything mentioning "insufficient" becomes InsufficientBalance; payment
    and transport errors pass through; everything else is wrapped.
    """
    if "insufficient" in str(error):
        return InsufficientBalance()
    if isinstance(error, (PaymentError, httpx.HTTPError)):
        return error
    return PaymentProcessingFailed(error)


class PaymentRetryClient:
    """
    Decorates an httpx.AsyncClient with the x402 pay-and-retry flow.

    Transitions: INITIAL -> DONE (no payment needed)
                 INITIAL -> AWAITING_PAYMENT -> RETRIED -> DONE
                 any non-terminal state -> FAILED
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        authorizer: Optional[PaymentAuthorizer] = None,
    ):
        self.http_client = http_client
        self.authorizer = authorizer or PaymentAuthorizer()

    async def request(
        self,
        url: str,
        init: Optional[RequestInit],
        account: str,
        signer: Signer,
        max_payment_amount: int = DEFAULT_MAX_PAYMENT_AMOUNT,
    ) -> httpx.Response:
        """
        Send a request, paying for it if the server answers 402.

        Responses are sent with stream=True; the caller owns (and must close)
        the returned response. 402 bodies are read and closed here.

        Args:
            url: Target URL
            init: Method, headers and body
            account: Payer address
            signer: Signing capability for that address
            max_payment_amount: Ceiling in token base units

        Returns:
            The first non-402 response

        Raises:
            PaymentError subclasses, or httpx.HTTPError from the transport
        """
        attempt = PaymentAttempt(url=url)
        try:
            return await self._run(
                attempt, url, init or RequestInit(), account, signer, max_payment_amount
            )
        except BaseException:
            if attempt.state not in (RetryState.DONE, RetryState.FAILED):
                attempt.transition(RetryState.FAILED)
            raise

    async def _run(
        self,
        attempt: PaymentAttempt,
        url: str,
        init: RequestInit,
        account: str,
        signer: Signer,
        max_payment_amount: int,
    ) -> httpx.Response:
        request = self.http_client.build_request(
            init.method,
            url,
            headers=init.headers,
            content=init.content,
            json=init.json_body,
        )
        # Buffer the body so the retry resends identical bytes
        request.read()

        response = await self.http_client.send(request, stream=True)

        if response.status_code != PAYMENT_REQUIRED:
            attempt.transition(RetryState.DONE)
            return response

        attempt.transition(RetryState.AWAITING_PAYMENT)
        requirements = await self._select_requirements(response)

        logger.info(
            "payment_required",
            url=url,
            network=requirements.network,
            amount=requirements.max_amount_required,
            pay_to=requirements.pay_to,
        )

        if requirements.amount > max_payment_amount:
            raise PaymentAmountExceeded(requirements.amount, max_payment_amount)

        try:
            signed_payment = await self.authorizer.authorize(account, signer, requirements)
            payment_header = encode_payment_header(signed_payment)

            retry_request = self._build_retry_request(request, payment_header)
            attempt.transition(RetryState.RETRIED)
            retry_response = await self.http_client.send(retry_request, stream=True)

            if retry_response.status_code == PAYMENT_REQUIRED:
                failure = await self._read_failure(retry_response)
                raise PaymentFailed(failure.error)

        except Exception as e:
            normalized = normalize_payment_error(e)
            logger.warning(
                "payment_retry_failed",
                url=url,
                error_type=type(normalized).__name__,
                error=str(e),
            )
            if normalized is e:
                raise
            raise normalized from e

        attempt.transition(RetryState.DONE)
        logger.info("payment_accepted", url=url, status=retry_response.status_code)
        return retry_response

    async def _select_requirements(self, response: httpx.Response) -> PaymentRequirements:
        """Parse the 402 body and pick the first offer"""
        try:
            await response.aread()
            try:
                body = response.json()
            except ValueError:
                body = None
        finally:
            await response.aclose()

        if not isinstance(body, dict):
            raise NoPaymentOptions()

        try:
            offer = X402Offer.model_validate(body)
        except ValidationError:
            raise NoPaymentOptions()

        if not offer.accepts:
            raise NoPaymentOptions()

        entry = offer.accepts[0]
        if not entry:
            raise PaymentRequirementsMissing()

        try:
            return PaymentRequirements.model_validate(entry)
        except ValidationError as e:
            raise PaymentProcessingFailed(e) from e

    @staticmethod
    async def _read_failure(response: httpx.Response) -> PaymentFailure:
        """Best-effort error message from a rejected retry"""
        try:
            await response.aread()
            try:
                return PaymentFailure.model_validate(response.json())
            except (ValueError, ValidationError):
                return PaymentFailure()
        finally:
            await response.aclose()

    @staticmethod
    def _build_retry_request(request: httpx.Request, payment_header: str) -> httpx.Request:
        """Same method, URL, headers and body, plus the payment headers"""
        headers = httpx.Headers(request.headers)
        headers[PAYMENT_HEADER] = payment_header
        headers["Access-Control-Expose-Headers"] = PAYMENT_RESPONSE_HEADER
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=request.content,
            extensions=request.extensions,
        )


FetchWithPayment = Callable[[str, Optional[RequestInit]], Awaitable[httpx.Response]]


def wrap_with_payment(
    http_client: httpx.AsyncClient,
    account: str,
    signer: Signer,
    max_payment_amount: int = DEFAULT_MAX_PAYMENT_AMOUNT,
    authorizer: Optional[PaymentAuthorizer] = None,
) -> FetchWithPayment:
    """Bind a wallet and ceiling to a pay-capable fetch function"""
    client = PaymentRetryClient(http_client, authorizer)

    async def fetch_with_payment(url: str, init: Optional[RequestInit] = None) -> httpx.Response:
        return await client.request(url, init, account, signer, max_payment_amount)

    return fetch_with_payment
