import pytest
from eth_account import Account

from aureo_x402.authorization import AuthorizationSigner
from aureo_x402.clients.base import x402Client
from aureo_x402.guard import PaymentGuard
from aureo_x402.settlement import SettlementSubmitter
from aureo_x402.signers import EthAccountSigner
from aureo_x402.verifier import PaymentVerifier
from mocks import (
    MANTLE_SEPOLIA_USDC,
    PAYEE_KEY,
    PAYER_BALANCE,
    PAYER_KEY,
    USDC_DOMAIN,
    FakeClock,
    InMemoryToken,
    no_sleep,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def payer_account():
    return Account.from_key(PAYER_KEY)


@pytest.fixture
def payee_account():
    return Account.from_key(PAYEE_KEY)


@pytest.fixture
def token(payer_account, payee_account, clock):
    token = InMemoryToken(sender=payee_account.address, clock=clock)
    token.mint(payer_account.address, PAYER_BALANCE)
    return token


@pytest.fixture
def submitter(token):
    return SettlementSubmitter(token, network="mantle-sepolia", sleep=no_sleep)


@pytest.fixture
def verifier(token, payee_account, submitter, clock):
    return PaymentVerifier(
        token,
        payee=payee_account.address,
        chain_id=5003,
        domain=USDC_DOMAIN,
        submitter=submitter,
        clock=clock,
        sleep=no_sleep,
    )


@pytest.fixture
def guard(verifier, payee_account, clock):
    return PaymentGuard(
        verifier,
        network="mantle-sepolia",
        chain_id=5003,
        payee=payee_account.address,
        token=MANTLE_SEPOLIA_USDC,
        token_domain=USDC_DOMAIN,
        pricing={"/api/x402/analyze": 10000, "/api/premium/*": 20000},
        clock=clock,
    )


@pytest.fixture
def requirement(guard):
    return guard.create_requirement("/api/x402/analyze", 10000, "Market analysis")


@pytest.fixture
def authorization_signer(payer_account, clock):
    return AuthorizationSigner(EthAccountSigner(payer_account), clock=clock)


@pytest.fixture
def x402_client(payer_account, clock):
    return x402Client(account=payer_account, clock=clock)
