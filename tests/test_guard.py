import pytest

from aureo_x402.encoding import (
    decode_requirement,
    decode_settlement_response,
    encode_payment,
)
from aureo_x402.errors import ConfigError
from aureo_x402.guard import PaymentGuard
from mocks import MANTLE_SEPOLIA_USDC, NOW, PAYER_BALANCE


def test_challenge_without_payment(guard, payee_account):
    decision = guard.evaluate(None, "/api/x402/analyze", description="Market analysis")

    assert not decision.allowed
    response = decision.response
    assert response.status_code == 402
    assert response.body["error"] == "Payment Required"
    assert response.body["message"] == "This endpoint requires a payment of 0.01 USDC"

    requirement = decode_requirement(response.headers["X-PAYMENT-REQUIRED"])
    assert requirement.amount == "10000"
    assert requirement.payee == payee_account.address
    assert requirement.token == MANTLE_SEPOLIA_USDC
    assert requirement.chain_id == 5003
    assert requirement.network == "mantle-sepolia"
    assert requirement.valid_until == NOW + 300
    assert requirement.resource == "/api/x402/analyze"
    assert requirement.description == "Market analysis"
    assert response.body["requirement"]["validUntil"] == NOW + 300
    assert response.body["requirement"]["extra"] == {"name": "USDC", "version": "1"}


def test_challenges_are_fresh(guard, clock):
    first = guard.evaluate(None, "/api/x402/analyze").response
    clock.advance(10)
    second = guard.evaluate(None, "/api/x402/analyze").response
    assert (
        decode_requirement(second.headers["X-PAYMENT-REQUIRED"]).valid_until
        == decode_requirement(first.headers["X-PAYMENT-REQUIRED"]).valid_until + 10
    )


def test_paid_request_is_admitted(guard, authorization_signer, token, payer_account):
    challenge = guard.evaluate(None, "/api/x402/analyze").response
    requirement = decode_requirement(challenge.headers["X-PAYMENT-REQUIRED"])
    header = encode_payment(authorization_signer.sign(requirement))

    decision = guard.evaluate(header, "/api/x402/analyze")

    assert decision.allowed
    assert decision.payer == payer_account.address
    settlement = decode_settlement_response(decision.headers["X-PAYMENT-RESPONSE"])
    assert settlement.success
    assert settlement.transaction.startswith("0x")
    assert settlement.payer == payer_account.address
    assert token.balance_of(payer_account.address) == PAYER_BALANCE - 10000


def test_replayed_payment_is_rejected(guard, authorization_signer, requirement):
    header = encode_payment(authorization_signer.sign(requirement))
    assert guard.evaluate(header, "/api/x402/analyze").allowed

    decision = guard.evaluate(header, "/api/x402/analyze")
    assert decision.response.status_code == 400
    assert decision.response.body["kind"] == "nonce_already_used"
    assert decision.response.body["error"] == "Payment failed: nonce_already_used"
    assert decision.response.body["retryable"] is True


def test_underpayment_is_rejected(guard, authorization_signer, requirement):
    header = encode_payment(authorization_signer.sign(requirement, value=9999))
    response = guard.evaluate(header, "/api/x402/analyze").response
    assert response.status_code == 400
    assert response.body["kind"] == "insufficient_payment"
    assert response.body["retryable"] is False


def test_malformed_header_is_rejected(guard):
    response = guard.evaluate("!!!", "/api/x402/analyze").response
    assert response.status_code == 400
    assert response.body["kind"] == "invalid_format"


def test_chain_outage_is_503(guard, authorization_signer, requirement, token):
    token.failures["authorization_state"] = 10
    header = encode_payment(authorization_signer.sign(requirement))
    response = guard.evaluate(header, "/api/x402/analyze").response
    assert response.status_code == 503
    assert response.body["kind"] == "chain_unavailable"
    assert response.body["retryable"] is True


def test_pricing_resolution(guard):
    assert guard.resolve_price("/api/x402/analyze") == 10000
    assert guard.resolve_price("/api/premium/signals") == 20000
    assert guard.resolve_price("/api/premium/signals", 30000) == 30000


def test_unpriced_resource(guard):
    with pytest.raises(ConfigError):
        guard.resolve_price("/api/free")


def test_explicit_price_must_be_positive(guard):
    with pytest.raises(ConfigError):
        guard.evaluate(None, "/api/x402/analyze", amount=0)


def test_pattern_price_in_challenge(guard):
    response = guard.evaluate(None, "/api/premium/signals").response
    assert decode_requirement(response.headers["X-PAYMENT-REQUIRED"]).amount == "20000"
    assert response.body["message"] == "This endpoint requires a payment of 0.02 USDC"


@pytest.mark.parametrize("kwargs", [{"validity_seconds": 0}, {"pricing": {"/a": 0}}])
def test_invalid_guard_configuration(verifier, payee_account, kwargs):
    with pytest.raises(ConfigError):
        PaymentGuard(
            verifier,
            network="mantle-sepolia",
            chain_id=5003,
            payee=payee_account.address,
            token=MANTLE_SEPOLIA_USDC,
            **kwargs,
        )


def test_requirement_without_domain(verifier, payee_account, clock):
    guard = PaymentGuard(
        verifier,
        network="mantle-sepolia",
        chain_id=5003,
        payee=payee_account.address,
        token=MANTLE_SEPOLIA_USDC,
        clock=clock,
    )
    response = guard.payment_required_response("/r", 10000)
    assert "extra" not in response.body["requirement"]


def test_distinct_authorizations_both_settle(guard, authorization_signer, token, payer_account):
    first = guard.create_requirement("/api/x402/analyze", 10000)
    second = guard.create_requirement("/api/x402/analyze", 10000)
    headers = [encode_payment(authorization_signer.sign(r)) for r in (first, second)]

    assert all(guard.evaluate(h, "/api/x402/analyze").allowed for h in headers)
    assert token.balance_of(payer_account.address) == PAYER_BALANCE - 20000
