"""
Pytest configuration and shared fixtures
"""

import pytest

from eth_account import Account

from paychat.payments.authorizer import PaymentAuthorizer

from tests.fakes import RecordingSigner, RejectingSigner


@pytest.fixture
def test_account():
    """Create a test Ethereum account"""
    return Account.create()


@pytest.fixture
def test_buyer_account():
    """Create a test buyer account"""
    return Account.from_key("0xabcdef1234567890abcdef1234567890abcdef1234567890abcdef1234567890")


@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture
def rejecting_signer() -> RejectingSigner:
    return RejectingSigner()


@pytest.fixture
def fixed_now() -> int:
    return 1_700_000_000


@pytest.fixture
def deterministic_authorizer(fixed_now) -> PaymentAuthorizer:
    """Authorizer with a pinned clock and a counting nonce source"""
    counter = {"n": 0}

    def random_bytes(n: int) -> bytes:
        counter["n"] += 1
        return counter["n"].to_bytes(n, "big")

    return PaymentAuthorizer(clock=lambda: fixed_now, random_bytes=random_bytes)
