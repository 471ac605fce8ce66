"""Payment error hierarchy.

Every failure the protocol can produce maps to exactly one error kind (see
:mod:`aureo_x402.constants`). Exceptions carry that kind so callers can
tell a retryable rejection from a configuration problem without parsing
messages.
"""

from __future__ import annotations

from typing import Any, Optional

from aureo_x402.constants import (
    CONFIGURATION_ERRORS,
    ERR_CHAIN_UNAVAILABLE,
    ERR_INSUFFICIENT_BALANCE,
    ERR_INSUFFICIENT_PAYMENT,
    ERR_INVALID_FORMAT,
    ERR_INVALID_PAYEE,
    ERR_INVALID_SIGNATURE,
    ERR_NO_PAYMENT,
    ERR_NONCE_ALREADY_USED,
    ERR_PAYMENT_AMOUNT_EXCEEDED,
    ERR_PAYMENT_DECLINED,
    ERR_PAYMENT_EXECUTION_FAILED,
    ERR_PAYMENT_EXPIRED,
    ERR_PROTOCOL_VIOLATION,
    ERR_REQUIREMENT_EXPIRED,
    ERR_SIGNER_UNAVAILABLE,
    ERR_SIGNING_FAILED,
    ERR_TRANSPORT_ERROR,
    RETRYABLE_ERRORS,
)


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


class PaymentError(Exception):
    """Base class for payment-related errors."""

    kind: str = ERR_PAYMENT_EXECUTION_FAILED

    def __init__(self, message: Optional[str] = None, *, kind: Optional[str] = None):
        if kind is not None:
            self.kind = kind
        super().__init__(message or self.kind)

    @property
    def retryable(self) -> bool:
        """True when a fresh challenge and signature may succeed."""
        return self.kind in RETRYABLE_ERRORS

    @property
    def is_configuration_error(self) -> bool:
        return self.kind in CONFIGURATION_ERRORS


class NoPaymentError(PaymentError):
    kind = ERR_NO_PAYMENT


class InvalidFormatError(PaymentError):
    """Raised when a header cannot be decoded into a well-formed object."""

    kind = ERR_INVALID_FORMAT


class InsufficientPaymentError(PaymentError):
    kind = ERR_INSUFFICIENT_PAYMENT


class InvalidPayeeError(PaymentError):
    kind = ERR_INVALID_PAYEE


class PaymentExpiredError(PaymentError):
    kind = ERR_PAYMENT_EXPIRED


class InvalidSignatureError(PaymentError):
    kind = ERR_INVALID_SIGNATURE


class NonceAlreadyUsedError(PaymentError):
    kind = ERR_NONCE_ALREADY_USED


class InsufficientBalanceError(PaymentError):
    kind = ERR_INSUFFICIENT_BALANCE


class PaymentExecutionFailedError(PaymentError):
    kind = ERR_PAYMENT_EXECUTION_FAILED


class ChainUnavailableError(PaymentError):
    """Raised by token bindings for transient RPC failures.

    ``tx_hash`` is set when a transaction was signed before the failure, since
    it may still have reached the node.
    """

    kind = ERR_CHAIN_UNAVAILABLE

    def __init__(self, message: Optional[str] = None, *, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)



class SignerUnavailableError(PaymentError):
    kind = ERR_SIGNER_UNAVAILABLE


class RequirementExpiredError(PaymentError):
    kind = ERR_REQUIREMENT_EXPIRED


class SigningError(PaymentError):
    kind = ERR_SIGNING_FAILED


class PaymentDeclinedError(PaymentError):
    kind = ERR_PAYMENT_DECLINED


class PaymentAmountExceededError(PaymentDeclinedError):
    """Raised when payment amount exceeds maximum allowed value."""

    kind = ERR_PAYMENT_AMOUNT_EXCEEDED


class ProtocolViolationError(PaymentError):
    kind = ERR_PROTOCOL_VIOLATION


class PaymentTransportError(PaymentError):
    """Raised for a non-402 error response.

    When the server answered with a payment failure body, ``rejection_kind``
    holds the server-side error kind.
    """

    kind = ERR_TRANSPORT_ERROR

    def __init__(self, status_code: int, body: Any, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.rejection_kind: Optional[str] = None
        if isinstance(body, dict) and isinstance(body.get("kind"), str):
            self.rejection_kind = body["kind"]
        super().__init__(message or f"Request failed with status {status_code}")

    @property
    def retryable(self) -> bool:
        return self.rejection_kind in RETRYABLE_ERRORS


class ContractRevertError(Exception):
    """Raised by token bindings when a call is definitively rejected on-chain."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
