import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from aureo_x402.authorization import AuthorizationSigner, DomainResolver
from aureo_x402.constants import X_PAYMENT_HEADER, X_PAYMENT_REQUIRED_HEADER
from aureo_x402.encoding import (
    decode_requirement,
    decode_settlement_response,
    encode_payment,
)
from aureo_x402.errors import (
    InvalidFormatError,
    PaymentAmountExceededError,
    ProtocolViolationError,
)
from aureo_x402.interfaces import ClientSigner
from aureo_x402.signers import EthAccountSigner
from aureo_x402.types import PaymentRequirement, SettleResponse

logger = logging.getLogger(__name__)

# Receives the decoded requirement; returning False declines the payment
ConfirmationCallback = Callable[[PaymentRequirement], Union[bool, Awaitable[bool]]]


class PaymentFlowState(str, Enum):
    IDLE = "idle"
    REQUEST_SENT = "request_sent"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SIGNING = "signing"
    RETRYING_WITH_PAYMENT = "retrying_with_payment"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PaymentAttempt:
    """Progress and outcome of a single paid request."""

    state: PaymentFlowState = PaymentFlowState.IDLE
    requirement: Optional[PaymentRequirement] = None
    payment_response: Optional[SettleResponse] = None
    status_code: Optional[int] = None
    body: Any = None


def decode_x_payment_response(header: str) -> SettleResponse:
    """Decode the X-PAYMENT-RESPONSE header.

    Args:
        header: The X-PAYMENT-RESPONSE header to decode

    Returns:
        The decoded settlement outcome (success, transaction, network, payer)
    """
    return decode_settlement_response(header)


class x402Client:
    """Base client for handling x402 payments.

    Holds the payer's signer and payment policy. Transport wrappers
    (:mod:`aureo_x402.clients.httpx`, :mod:`aureo_x402.clients.requests`)
    drive the request/challenge/retry flow around it.
    """

    def __init__(
        self,
        signer: Optional[ClientSigner] = None,
        account: Any = None,
        max_value: Optional[int] = None,
        domain_resolver: Optional[DomainResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the x402 client.

        Args:
            signer: Wallet implementing ``address`` and ``sign_typed_data``
            account: eth_account LocalAccount, wrapped when no signer is given
            max_value: Optional maximum allowed payment amount in base units
            domain_resolver: Optional lookup of the token's EIP-712 domain
            clock: Returns the current Unix time in seconds
        """
        if signer is None and account is not None:
            signer = EthAccountSigner(account)
        self.signer = signer
        self.max_value = max_value
        self.authorization_signer = AuthorizationSigner(signer, domain_resolver, clock)

    def get_payment_requirement(self, headers: Mapping[str, str]) -> PaymentRequirement:
        """Extract the requirement from a 402 response's headers.

        Raises:
            ProtocolViolationError: The header is missing or undecodable
        """
        header = headers.get(X_PAYMENT_REQUIRED_HEADER)
        if not header:
            raise ProtocolViolationError(
                f"402 response without {X_PAYMENT_REQUIRED_HEADER} header"
            )
        try:
            return decode_requirement(header)
        except InvalidFormatError as e:
            raise ProtocolViolationError(f"Undecodable payment requirement: {e}") from e

    def check_max_value(self, requirement: PaymentRequirement) -> None:
        if self.max_value is not None and requirement.amount_int > self.max_value:
            raise PaymentAmountExceededError(
                f"Payment amount {requirement.amount} exceeds maximum allowed value {self.max_value}"
            )

    def create_payment_header(
        self, requirement: PaymentRequirement, value: Optional[int] = None
    ) -> str:
        """Sign ``requirement`` and encode it for the X-PAYMENT header."""
        payment = self.authorization_signer.sign(requirement, value)
        return encode_payment(payment)

    def payment_headers(self, requirement: PaymentRequirement) -> dict[str, str]:
        return {X_PAYMENT_HEADER: self.create_payment_header(requirement)}
