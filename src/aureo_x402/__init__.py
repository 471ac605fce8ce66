"""aureo_x402: HTTP 402 micropayments settled with EIP-3009 authorizations."""

# Signing
from aureo_x402.authorization import (
    AuthorizationSigner,
    recover_authorizer,
    token_domain_resolver,
)
from aureo_x402.signers import EthAccountSigner

# Clients
from aureo_x402.clients.base import (
    PaymentAttempt,
    PaymentFlowState,
    decode_x_payment_response,
    x402Client,
)

# Server
from aureo_x402.guard import GuardDecision, GuardResponse, PaymentGuard
from aureo_x402.settlement import SettlementSubmitter
from aureo_x402.verifier import PaymentVerifier

# Codec
from aureo_x402.encoding import (
    decode_payment,
    decode_requirement,
    encode_payment,
    encode_requirement,
)

# Errors
from aureo_x402.errors import (
    ChainUnavailableError,
    ConfigError,
    InsufficientBalanceError,
    InsufficientPaymentError,
    InvalidFormatError,
    InvalidPayeeError,
    InvalidSignatureError,
    NonceAlreadyUsedError,
    NoPaymentError,
    PaymentAmountExceededError,
    PaymentDeclinedError,
    PaymentError,
    PaymentExecutionFailedError,
    PaymentExpiredError,
    PaymentTransportError,
    ProtocolViolationError,
    RequirementExpiredError,
    SignerUnavailableError,
    SigningError,
)

# Types
from aureo_x402.types import (
    EIP3009Authorization,
    EIP712Domain,
    PaymentPayload,
    PaymentRequiredResponse,
    PaymentRequirement,
    SettleResponse,
    VerifyResponse,
)

from aureo_x402.constants import (
    X402_VERSION,
    X_PAYMENT_HEADER,
    X_PAYMENT_REQUIRED_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
)


__all__ = [
    # Signing
    "AuthorizationSigner",
    "EthAccountSigner",
    "recover_authorizer",
    "token_domain_resolver",
    # Clients
    "x402Client",
    "PaymentAttempt",
    "PaymentFlowState",
    "decode_x_payment_response",
    # Server
    "GuardDecision",
    "GuardResponse",
    "PaymentGuard",
    "PaymentVerifier",
    "SettlementSubmitter",
    # Codec
    "decode_payment",
    "decode_requirement",
    "encode_payment",
    "encode_requirement",
    # Errors
    "ChainUnavailableError",
    "ConfigError",
    "InsufficientBalanceError",
    "InsufficientPaymentError",
    "InvalidFormatError",
    "InvalidPayeeError",
    "InvalidSignatureError",
    "NoPaymentError",
    "NonceAlreadyUsedError",
    "PaymentAmountExceededError",
    "PaymentDeclinedError",
    "PaymentError",
    "PaymentExecutionFailedError",
    "PaymentExpiredError",
    "PaymentTransportError",
    "ProtocolViolationError",
    "RequirementExpiredError",
    "SignerUnavailableError",
    "SigningError",
    # Types
    "EIP3009Authorization",
    "EIP712Domain",
    "PaymentPayload",
    "PaymentRequiredResponse",
    "PaymentRequirement",
    "SettleResponse",
    "VerifyResponse",
    # Protocol
    "X402_VERSION",
    "X_PAYMENT_HEADER",
    "X_PAYMENT_REQUIRED_HEADER",
    "X_PAYMENT_RESPONSE_HEADER",
]
