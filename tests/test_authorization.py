import pytest

from aureo_x402.authorization import (
    AuthorizationSigner,
    build_domain,
    known_token_domain,
    recover_authorizer,
    token_domain_resolver,
)
from aureo_x402.errors import RequirementExpiredError, SignerUnavailableError, SigningError
from aureo_x402.signers import EthAccountSigner
from aureo_x402.types import EIP712Domain, PaymentRequirement
from mocks import MANTLE_SEPOLIA_USDC, NOW, USDC_DOMAIN

UNKNOWN_TOKEN = "0x9999999999999999999999999999999999999999"


class StubSigner:
    """Returns a fixed signature; for tests that only care about nonces."""

    address = "0x2222222222222222222222222222222222222222"

    def __init__(self):
        self.calls = []

    def sign_typed_data(self, domain, types, primary_type, message):
        self.calls.append((domain, types, primary_type, message))
        return bytes(32) + bytes(32) + bytes([27])


class FailingSigner:
    address = "0x2222222222222222222222222222222222222222"

    def sign_typed_data(self, domain, types, primary_type, message):
        raise RuntimeError("user rejected the request")


def test_sign_binds_requirement(authorization_signer, requirement, payer_account):
    payment = authorization_signer.sign(requirement)
    auth = payment.authorization

    assert payment.version == "1"
    assert auth.from_ == payer_account.address
    assert auth.to == requirement.payee
    assert auth.value == requirement.amount
    assert auth.valid_after == 0
    assert auth.valid_before == requirement.valid_until
    assert len(auth.nonce_bytes) == 32


def test_signature_recovers_to_payer(authorization_signer, requirement, payer_account):
    auth = authorization_signer.sign(requirement).authorization
    domain = build_domain(USDC_DOMAIN, 5003, MANTLE_SEPOLIA_USDC)
    assert recover_authorizer(auth, domain) == payer_account.address


def test_signature_is_bound_to_domain(authorization_signer, requirement, payer_account):
    auth = authorization_signer.sign(requirement).authorization
    other_chain = build_domain(USDC_DOMAIN, 5000, MANTLE_SEPOLIA_USDC)
    other_version = build_domain(EIP712Domain(name="USDC", version="2"), 5003, MANTLE_SEPOLIA_USDC)
    assert recover_authorizer(auth, other_chain) != payer_account.address
    assert recover_authorizer(auth, other_version) != payer_account.address


def test_tampered_value_does_not_recover_to_payer(authorization_signer, requirement, payer_account):
    auth = authorization_signer.sign(requirement).authorization
    tampered = auth.model_copy(update={"value": "1"})
    domain = build_domain(USDC_DOMAIN, 5003, MANTLE_SEPOLIA_USDC)
    assert recover_authorizer(tampered, domain) != payer_account.address


def test_sign_with_explicit_value(authorization_signer, requirement):
    auth = authorization_signer.sign(requirement, value=5000).authorization
    assert auth.value == "5000"


def test_nonces_are_unique(requirement, clock):
    signer = AuthorizationSigner(StubSigner(), clock=clock)
    nonces = {signer.sign(requirement).authorization.nonce for _ in range(10_000)}
    assert len(nonces) == 10_000


def test_sign_without_signer(requirement, clock):
    with pytest.raises(SignerUnavailableError):
        AuthorizationSigner(None, clock=clock).sign(requirement)


def test_sign_expired_requirement(authorization_signer, requirement, clock):
    clock.now = requirement.valid_until
    with pytest.raises(RequirementExpiredError) as exc_info:
        authorization_signer.sign(requirement)
    assert exc_info.value.kind == "requirement_expired_at_signing"
    assert exc_info.value.retryable


def test_expiry_checked_before_signer_is_used(requirement, clock):
    stub = StubSigner()
    clock.now = requirement.valid_until + 1
    with pytest.raises(RequirementExpiredError):
        AuthorizationSigner(stub, clock=clock).sign(requirement)
    assert stub.calls == []


def test_wallet_failure_is_signing_error(requirement, clock):
    with pytest.raises(SigningError) as exc_info:
        AuthorizationSigner(FailingSigner(), clock=clock).sign(requirement)
    assert "user rejected" in str(exc_info.value)


def test_typed_data_shape(requirement, clock):
    stub = StubSigner()
    AuthorizationSigner(stub, clock=clock).sign(requirement)
    domain, types, primary_type, message = stub.calls[0]

    assert primary_type == "ReceiveWithAuthorization"
    assert [f["name"] for f in types["ReceiveWithAuthorization"]] == [
        "from",
        "to",
        "value",
        "validAfter",
        "validBefore",
        "nonce",
    ]
    assert sorted(domain.to_dict()) == ["chainId", "name", "verifyingContract", "version"]
    assert (domain.name, domain.version, domain.chain_id) == ("USDC", "1", 5003)
    assert domain.verifying_contract.lower() == MANTLE_SEPOLIA_USDC.lower()
    assert message["validAfter"] == 0
    assert message["value"] == 10000


def make_requirement(token: str, extra=None) -> PaymentRequirement:
    return PaymentRequirement(
        network="mantle-sepolia",
        chain_id=5003,
        payee="0x1111111111111111111111111111111111111111",
        token=token,
        amount="1",
        valid_until=NOW + 60,
        resource="/r",
        extra=extra,
    )


def test_domain_from_requirement_extra(clock):
    signer = AuthorizationSigner(StubSigner(), clock=clock)
    domain = signer.resolve_domain(
        make_requirement(UNKNOWN_TOKEN, EIP712Domain(name="Gold", version="3"))
    )
    assert domain == EIP712Domain(name="Gold", version="3")


def test_domain_from_known_tokens(clock):
    signer = AuthorizationSigner(StubSigner(), clock=clock)
    assert signer.resolve_domain(make_requirement(MANTLE_SEPOLIA_USDC)) == USDC_DOMAIN
    assert known_token_domain(5003, MANTLE_SEPOLIA_USDC.lower()) == USDC_DOMAIN


def test_domain_resolver_takes_precedence(clock):
    signer = AuthorizationSigner(
        StubSigner(),
        domain_resolver=lambda chain_id, token: EIP712Domain(name="Onchain", version="9"),
        clock=clock,
    )
    requirement = make_requirement(MANTLE_SEPOLIA_USDC, EIP712Domain(name="Gold", version="3"))
    assert signer.resolve_domain(requirement).name == "Onchain"


def test_domain_resolver_falls_through_on_none(clock):
    signer = AuthorizationSigner(
        StubSigner(), domain_resolver=lambda chain_id, token: None, clock=clock
    )
    assert signer.resolve_domain(make_requirement(MANTLE_SEPOLIA_USDC)) == USDC_DOMAIN


def test_unknown_domain_is_signing_error(clock):
    signer = AuthorizationSigner(StubSigner(), clock=clock)
    with pytest.raises(SigningError):
        signer.sign(make_requirement(UNKNOWN_TOKEN))


def test_token_domain_resolver_reads_contract_once(token):
    resolve = token_domain_resolver(token)
    assert resolve(5003, MANTLE_SEPOLIA_USDC) == USDC_DOMAIN
    assert resolve(5003, MANTLE_SEPOLIA_USDC) == USDC_DOMAIN
    assert resolve(5003, UNKNOWN_TOKEN) is None
    assert token.calls.count("name") == 1


def test_eth_account_signer_address(payer_account):
    assert EthAccountSigner(payer_account).address == payer_account.address
