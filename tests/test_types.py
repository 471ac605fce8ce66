import pytest
from pydantic import ValidationError

from aureo_x402.types import (
    EIP3009Authorization,
    PaymentFailureResponse,
    PaymentPayload,
    PaymentRequiredResponse,
    PaymentRequirement,
    SettleResponse,
    TypedDataDomain,
    VerifyResponse,
)

PAYEE = "0x1111111111111111111111111111111111111111"
PAYER = "0x2222222222222222222222222222222222222222"
USDC = "0x53b8e9e6513A2e7A4d23F8F9BFe3F5985C9788e4"


def test_payment_requirement_serde():
    original = PaymentRequirement(
        network="mantle-sepolia",
        chain_id=5003,
        payee=PAYEE,
        token=USDC,
        amount="10000",
        valid_until=1_750_000_300,
        description="Market analysis",
        resource="/api/x402/analyze",
    )
    expected = {
        "version": "1",
        "network": "mantle-sepolia",
        "chainId": 5003,
        "payee": PAYEE,
        "token": USDC,
        "amount": "10000",
        "validUntil": 1_750_000_300,
        "description": "Market analysis",
        "resource": "/api/x402/analyze",
        "extra": None,
    }
    assert original.model_dump(by_alias=True) == expected
    assert PaymentRequirement(**expected) == original


def test_payment_requirement_accepts_integer_amount():
    requirement = PaymentRequirement(
        network="mantle-sepolia",
        chain_id=5003,
        payee=PAYEE,
        token=USDC,
        amount=10000,
        valid_until=1,
        resource="/r",
    )
    assert requirement.amount == "10000"
    assert requirement.amount_int == 10000


def test_payment_requirement_is_immutable():
    requirement = PaymentRequirement(
        network="mantle-sepolia",
        chain_id=5003,
        payee=PAYEE,
        token=USDC,
        amount="1",
        valid_until=1,
        resource="/r",
    )
    with pytest.raises(ValidationError):
        requirement.amount = "2"


def test_payment_requirement_rejects_boolean_amount():
    with pytest.raises(ValidationError):
        PaymentRequirement(
            network="mantle-sepolia",
            chain_id=5003,
            payee=PAYEE,
            token=USDC,
            amount=True,
            valid_until=1,
            resource="/r",
        )


def test_eip3009_authorization_serde():
    original = EIP3009Authorization(
        from_=PAYER,
        to=PAYEE,
        value="10000",
        valid_after=0,
        valid_before=1_750_000_300,
        nonce="0x" + "ab" * 32,
        v=28,
        r="0x" + "01" * 32,
        s="0x" + "02" * 32,
    )
    expected = {
        "from": PAYER,
        "to": PAYEE,
        "value": "10000",
        "validAfter": 0,
        "validBefore": 1_750_000_300,
        "nonce": "0x" + "ab" * 32,
        "v": 28,
        "r": "0x" + "01" * 32,
        "s": "0x" + "02" * 32,
    }
    assert original.model_dump(by_alias=True) == expected
    assert EIP3009Authorization(**expected) == original
    assert original.nonce_bytes == bytes.fromhex("ab" * 32)
    assert original.signature == bytes.fromhex("01" * 32 + "02" * 32) + bytes([28])


def test_payment_payload_rejects_unknown_version():
    with pytest.raises(ValidationError):
        PaymentPayload(
            version="2",
            authorization=EIP3009Authorization(
                from_=PAYER,
                to=PAYEE,
                value="1",
                valid_after=0,
                valid_before=1,
                nonce="0x" + "00" * 32,
                v=27,
                r="0x" + "00" * 32,
                s="0x" + "00" * 32,
            ),
        )


def test_payment_required_response_serde():
    requirement = PaymentRequirement(
        network="mantle-sepolia",
        chain_id=5003,
        payee=PAYEE,
        token=USDC,
        amount="10000",
        valid_until=1,
        resource="/r",
    )
    body = PaymentRequiredResponse(
        requirement=requirement, message="This endpoint requires a payment of 0.01 USDC"
    ).model_dump(by_alias=True)
    assert body["error"] == "Payment Required"
    assert body["requirement"]["chainId"] == 5003


def test_failure_response_serde():
    original = PaymentFailureResponse(
        error="Payment failed: insufficient_payment",
        kind="insufficient_payment",
        message="too little",
        retryable=False,
    )
    assert original.model_dump(by_alias=True) == {
        "error": "Payment failed: insufficient_payment",
        "kind": "insufficient_payment",
        "message": "too little",
        "retryable": False,
    }


def test_verify_response_serde():
    original = VerifyResponse(is_valid=True, payer=PAYER)
    expected = {
        "isValid": True,
        "invalidReason": None,
        "payer": PAYER,
        "error": None,
        "transaction": None,
        "settled": False,
    }
    assert original.model_dump(by_alias=True) == expected
    assert VerifyResponse(**expected) == original


def test_settle_response_serde():
    original = SettleResponse(
        success=False,
        error_reason="nonce_already_used",
        network="mantle-sepolia",
        payer=PAYER,
    )
    expected = {
        "success": False,
        "errorReason": "nonce_already_used",
        "error": None,
        "transaction": None,
        "network": "mantle-sepolia",
        "payer": PAYER,
    }
    assert original.model_dump(by_alias=True) == expected
    assert SettleResponse(**expected) == original


def test_typed_data_domain_to_dict():
    domain = TypedDataDomain(name="USDC", version="1", chain_id=5003, verifying_contract=USDC)
    assert domain.to_dict() == {
        "name": "USDC",
        "version": "1",
        "chainId": 5003,
        "verifyingContract": USDC,
    }
