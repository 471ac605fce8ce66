"""Framework-independent route guard.

The guard turns an incoming payment header into either an authenticated payer
or a ready-to-send HTTP response (402 challenge or failure). Framework
adapters in :mod:`aureo_x402.fastapi` and :mod:`aureo_x402.flask` only
translate requests and responses.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from aureo_x402.constants import (
    DEFAULT_DECIMALS,
    DEFAULT_VALIDITY_SECONDS,
    ERR_CHAIN_UNAVAILABLE,
    ERR_NO_PAYMENT,
    ERR_PAYMENT_EXECUTION_FAILED,
    RETRYABLE_ERRORS,
    X402_VERSION,
    X_PAYMENT_REQUIRED_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
)
from aureo_x402.encoding import encode_requirement, encode_settlement_response
from aureo_x402.errors import ConfigError
from aureo_x402.path import path_is_match
from aureo_x402.types import (
    EIP712Domain,
    PaymentFailureResponse,
    PaymentRequiredResponse,
    PaymentRequirement,
    SettleResponse,
)
from aureo_x402.utils import format_amount
from aureo_x402.verifier import PaymentVerifier

logger = logging.getLogger(__name__)


@dataclass
class GuardResponse:
    """An HTTP response the guard wants sent instead of the handler's."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class GuardDecision:
    payer: Optional[str] = None
    response: Optional[GuardResponse] = None
    # Extra headers for the handler's response once payment is accepted
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.payer is not None and self.response is None


class PaymentGuard:
    """Issues challenges and admits paid requests for protected resources.

    Challenges are generated fresh on every call and never stored. Any number
    of outstanding challenges for the same resource are equally valid until
    they expire.

    Args:
        verifier: Verifies and settles incoming payments.
        network: Network label carried in requirements.
        chain_id: Chain id carried in requirements.
        payee: Address payments are made out to.
        token: Settlement token address.
        validity_seconds: Lifetime of each challenge.
        token_domain: EIP-712 name/version advertised in ``extra``.
        decimals: Token decimals, for human-readable amounts.
        pricing: Default price per resource path or path pattern.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        verifier: PaymentVerifier,
        network: str,
        chain_id: int,
        payee: str,
        token: str,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        token_domain: Optional[EIP712Domain] = None,
        decimals: int = DEFAULT_DECIMALS,
        pricing: Optional[dict[str, int]] = None,
        clock: Callable[[], float] = time.time,
    ):
        if validity_seconds <= 0:
            raise ConfigError("validity_seconds must be positive")
        for resource, price in (pricing or {}).items():
            if price <= 0:
                raise ConfigError(f"Price for {resource} must be positive")
        self.verifier = verifier
        self.network = network
        self.chain_id = chain_id
        self.payee = payee
        self.token = token
        self.validity_seconds = validity_seconds
        self.token_domain = token_domain
        self.decimals = decimals
        self.pricing = dict(pricing or {})
        self.clock = clock

    def resolve_price(self, resource: str, amount: Optional[int] = None) -> int:
        """Explicit amount, else the exact pricing entry, else the first matching pattern."""
        if amount is not None:
            if amount <= 0:
                raise ConfigError(f"Price for {resource} must be positive")
            return amount
        if resource in self.pricing:
            return self.pricing[resource]
        for pattern, price in self.pricing.items():
            if path_is_match(pattern, resource):
                return price
        raise ConfigError(f"No price configured for {resource}")

    def create_requirement(
        self, resource: str, amount: int, description: str = ""
    ) -> PaymentRequirement:
        now = int(self.clock())
        return PaymentRequirement(
            version=X402_VERSION,
            network=self.network,
            chain_id=self.chain_id,
            payee=self.payee,
            token=self.token,
            amount=str(amount),
            valid_until=now + self.validity_seconds,
            description=description,
            resource=resource,
            extra=self.token_domain,
        )

    def payment_required_response(
        self, resource: str, amount: int, description: str = ""
    ) -> GuardResponse:
        """402 response carrying a fresh requirement in the X-PAYMENT-REQUIRED header."""
        requirement = self.create_requirement(resource, amount, description)
        body = PaymentRequiredResponse(
            requirement=requirement,
            message=(
                "This endpoint requires a payment of "
                f"{format_amount(amount, self.decimals)} USDC"
            ),
        ).model_dump(by_alias=True, exclude_none=True, mode="json")
        logger.info("Issued payment challenge for %s (%s)", resource, amount)
        return GuardResponse(
            status_code=402,
            body=body,
            headers={X_PAYMENT_REQUIRED_HEADER: encode_requirement(requirement)},
        )

    def failure_response(self, kind: str, message: Optional[str] = None) -> GuardResponse:
        status_code = 503 if kind == ERR_CHAIN_UNAVAILABLE else 400
        body = PaymentFailureResponse(
            error=f"Payment failed: {kind}",
            kind=kind,
            message=message,
            retryable=kind in RETRYABLE_ERRORS,
        ).model_dump(by_alias=True, exclude_none=True)
        return GuardResponse(status_code=status_code, body=body)

    def evaluate(
        self,
        payment_header: Optional[str],
        resource: str,
        amount: Optional[int] = None,
        description: str = "",
    ) -> GuardDecision:
        """Decide whether a request for ``resource`` may reach its handler.

        Blocks on on-chain reads and settlement; run it off the event loop in
        async servers.
        """
        price = self.resolve_price(resource, amount)

        if not payment_header:
            return GuardDecision(
                response=self.payment_required_response(resource, price, description)
            )

        result = self.verifier.verify_and_settle(payment_header, price)

        if not result.is_valid:
            kind = result.invalid_reason or ERR_PAYMENT_EXECUTION_FAILED
            if kind == ERR_NO_PAYMENT:
                return GuardDecision(
                    response=self.payment_required_response(resource, price, description)
                )
            return GuardDecision(response=self.failure_response(kind, result.error))

        headers: dict[str, str] = {}
        if result.settled:
            headers[X_PAYMENT_RESPONSE_HEADER] = encode_settlement_response(
                SettleResponse(
                    success=True,
                    transaction=result.transaction,
                    network=self.network,
                    payer=result.payer,
                )
            )
        logger.info("Payment accepted for %s from %s", resource, result.payer)
        return GuardDecision(payer=result.payer, headers=headers)
