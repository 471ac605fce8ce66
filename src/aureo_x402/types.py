from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from aureo_x402.constants import X402_VERSION
from aureo_x402.utils import hex_to_bytes, is_bytes32_hex, is_valid_address, join_signature


def _integer_string(v: Any, field: str) -> str:
    if isinstance(v, bool):
        raise ValueError(f"{field} must be an integer encoded as a string")
    if isinstance(v, int):
        v = str(v)
    if not isinstance(v, str) or not v.isdigit():
        raise ValueError(f"{field} must be an integer encoded as a string")
    return v


def _address(v: Any, field: str) -> str:
    if not is_valid_address(v):
        raise ValueError(f"{field} must be a 0x-prefixed 20-byte hex address")
    return v


def _protocol_version(v: Any) -> str:
    if v != X402_VERSION:
        raise ValueError(f"unsupported protocol version: {v!r}")
    return v


class EIP712Domain(BaseModel):
    """EIP-712 domain information for token signing"""

    name: str
    version: str

    model_config = ConfigDict(frozen=True)


class PaymentRequirement(BaseModel):
    """Challenge issued with a 402 response. Immutable once issued."""

    version: str = X402_VERSION
    network: str
    chain_id: int = Field(gt=0)
    payee: str
    token: str
    amount: str
    valid_until: int = Field(gt=0)
    description: str = ""
    resource: str
    extra: Optional[EIP712Domain] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @field_validator("version")
    def validate_version(cls, v):
        return _protocol_version(v)

    @field_validator("amount", mode="before")
    def validate_amount(cls, v):
        v = _integer_string(v, "amount")
        if int(v) <= 0:
            raise ValueError("amount must be greater than zero")
        return v

    @field_validator("payee", "token")
    def validate_addresses(cls, v, info):
        return _address(v, info.field_name)

    @property
    def amount_int(self) -> int:
        return int(self.amount)


class EIP3009Authorization(BaseModel):
    from_: str = Field(alias="from")
    to: str
    value: str
    valid_after: int = Field(ge=0)
    valid_before: int = Field(ge=0)
    nonce: str
    v: int
    r: str
    s: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @field_validator("value", mode="before")
    def validate_value(cls, v):
        return _integer_string(v, "value")

    @field_validator("from_", "to")
    def validate_addresses(cls, v, info):
        return _address(v, info.field_name)

    @field_validator("nonce", "r", "s")
    def validate_bytes32(cls, v, info):
        if not is_bytes32_hex(v):
            raise ValueError(f"{info.field_name} must be 0x-prefixed 32-byte hex")
        return v

    @field_validator("v")
    def validate_v(cls, v):
        if v not in (27, 28):
            raise ValueError("v must be 27 or 28")
        return v

    @property
    def value_int(self) -> int:
        return int(self.value)

    @property
    def nonce_bytes(self) -> bytes:
        return hex_to_bytes(self.nonce)

    @property
    def signature(self) -> bytes:
        """65-byte r||s||v signature."""
        return join_signature(self.v, self.r, self.s)


class PaymentPayload(BaseModel):
    """Signed, single-use payment carried in the X-PAYMENT header."""

    version: str = X402_VERSION
    authorization: EIP3009Authorization

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @field_validator("version")
    def validate_version(cls, v):
        return _protocol_version(v)


# Returned by a server as json alongside a 402 response code
class PaymentRequiredResponse(BaseModel):
    error: str = "Payment Required"
    requirement: PaymentRequirement
    message: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PaymentFailureResponse(BaseModel):
    error: str
    kind: str
    message: Optional[str] = None
    retryable: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class VerifyResponse(BaseModel):
    is_valid: bool
    invalid_reason: Optional[str] = None
    payer: Optional[str] = None
    error: Optional[str] = None
    transaction: Optional[str] = None
    settled: bool = False

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SettleResponse(BaseModel):
    success: bool
    error_reason: Optional[str] = None
    error: Optional[str] = None
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


@dataclass(frozen=True)
class TypedDataDomain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class TransactionReceipt:
    status: int
    block_number: Optional[int]
    tx_hash: str
