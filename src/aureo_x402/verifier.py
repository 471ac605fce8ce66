"""Server-side payment verification.

Checks run in a fixed order and stop at the first violation:

1. payment header present
2. header decodes to a well-formed payment
3. value covers the required amount
4. payment is addressed to the configured payee
5. current time within the validity window; validBefore is exclusive when
   settling, matching the token
6. signature recovers to the payer (optional)
7. nonce not yet consumed on-chain
8. payer balance covers the value on-chain

Only the chain is authoritative for replay protection; checks 1-6 are
necessary but not sufficient.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from aureo_x402.authorization import build_domain, recover_authorizer
from aureo_x402.constants import (
    DEFAULT_RPC_BACKOFF_SECONDS,
    DEFAULT_RPC_MAX_ATTEMPTS,
    ERR_NO_PAYMENT,
    ERR_PAYMENT_EXECUTION_FAILED,
)
from aureo_x402.encoding import decode_payment
from aureo_x402.errors import (
    ChainUnavailableError,
    ConfigError,
    ContractRevertError,
    InsufficientBalanceError,
    InsufficientPaymentError,
    InvalidPayeeError,
    InvalidSignatureError,
    NoPaymentError,
    NonceAlreadyUsedError,
    PaymentError,
    PaymentExecutionFailedError,
    PaymentExpiredError,
)
from aureo_x402.interfaces import TokenContract
from aureo_x402.settlement import SettlementSubmitter
from aureo_x402.types import EIP712Domain, PaymentPayload, VerifyResponse
from aureo_x402.utils import addresses_equal, call_with_retry

logger = logging.getLogger(__name__)


class PaymentVerifier:
    """Validates payments against protocol rules and on-chain state.

    Args:
        token: Binding for the settlement token.
        payee: Address every payment must be made out to.
        chain_id: Chain the token lives on.
        domain: The token's EIP-712 name and version.
        submitter: Settles verified payments. Without one the verifier refuses
            to start unless ``allow_unsettled`` is set.
        allow_unsettled: Accept payments without moving funds. Every accepted
            payment is logged as unsettled.
        verify_signature: Recover the EIP-712 signer before touching the chain.
        clock_skew: Seconds of tolerance applied to the validity window. With a
            submitter only validAfter gets it, since the chain enforces
            validBefore strictly.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        token: TokenContract,
        payee: str,
        chain_id: int,
        domain: EIP712Domain,
        submitter: Optional[SettlementSubmitter] = None,
        allow_unsettled: bool = False,
        verify_signature: bool = True,
        clock_skew: int = 0,
        clock: Callable[[], float] = time.time,
        max_attempts: int = DEFAULT_RPC_MAX_ATTEMPTS,
        backoff: float = DEFAULT_RPC_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if submitter is None and not allow_unsettled:
            raise ConfigError(
                "No settlement submitter configured; set allow_unsettled=True to "
                "accept payments without capturing funds"
            )
        if submitter is None:
            logger.warning("Payment verifier running without settlement; funds will not move")
        self.token = token
        self.payee = payee
        self.chain_id = chain_id
        self.domain = domain
        self.submitter = submitter
        self.allow_unsettled = allow_unsettled
        self.verify_signature = verify_signature
        self.clock_skew = clock_skew
        self.clock = clock
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.sleep = sleep

    def _invalid(
        self, reason: str, message: str, payer: Optional[str] = None
    ) -> VerifyResponse:
        if reason != ERR_NO_PAYMENT:
            logger.warning("Payment rejected (%s): %s", reason, message)
        return VerifyResponse(
            is_valid=False, invalid_reason=reason, error=message, payer=payer
        )

    def _read(self, func):
        return call_with_retry(func, self.max_attempts, self.backoff, self.sleep)

    def _decode(self, payment_header: Optional[str]) -> PaymentPayload:
        if not payment_header:
            raise NoPaymentError("No X-PAYMENT header provided")
        return decode_payment(payment_header)

    def verify(self, payment_header: Optional[str], required_amount: int) -> VerifyResponse:
        """Run every check against a raw X-PAYMENT header value."""
        try:
            payment = self._decode(payment_header)
        except PaymentError as e:
            return self._invalid(e.kind, str(e))

        return self.verify_payment(payment, required_amount)

    def verify_payment(self, payment: PaymentPayload, required_amount: int) -> VerifyResponse:
        """Run checks 3 onwards against a decoded payment."""
        payer = payment.authorization.from_
        try:
            self.check_payment(payment, required_amount)
        except ChainUnavailableError as e:
            logger.error("Chain unavailable while verifying payment: %s", e)
            return self._invalid(e.kind, str(e), payer)
        except PaymentError as e:
            return self._invalid(e.kind, str(e), payer)

        return VerifyResponse(is_valid=True, payer=payer)

    def check_payment(self, payment: PaymentPayload, required_amount: int) -> None:
        """Raise the :class:`PaymentError` for the first check ``payment`` fails."""
        auth = payment.authorization
        payer = auth.from_

        if auth.value_int < required_amount:
            raise InsufficientPaymentError(
                f"Payment value {auth.value} is less than required {required_amount}"
            )

        if not addresses_equal(auth.to, self.payee):
            raise InvalidPayeeError(f"Payment is made out to {auth.to}, not the payee")

        now = int(self.clock())
        if now + self.clock_skew < auth.valid_after:
            raise PaymentExpiredError(f"Payment not valid until {auth.valid_after}")
        if self.submitter is not None:
            # The token only accepts the call while block time < validBefore
            expired = now >= auth.valid_before
        else:
            expired = now - self.clock_skew > auth.valid_before
        if expired:
            raise PaymentExpiredError(f"Payment expired at {auth.valid_before}")

        if self.verify_signature:
            domain = build_domain(self.domain, self.chain_id, self.token.address)
            try:
                recovered = recover_authorizer(auth, domain)
            except Exception as e:
                raise InvalidSignatureError(f"Unrecoverable signature: {e}") from e
            if not addresses_equal(recovered, payer):
                raise InvalidSignatureError("Signature does not match the payer")

        try:
            if self._read(lambda: self.token.authorization_state(payer, auth.nonce_bytes)):
                raise NonceAlreadyUsedError(f"Authorization {auth.nonce} already used")

            balance = self._read(lambda: self.token.balance_of(payer))
            if balance < auth.value_int:
                raise InsufficientBalanceError(
                    f"Payer balance {balance} is less than {auth.value}"
                )
        except ContractRevertError as e:
            raise PaymentExecutionFailedError(e.reason) from e

    def verify_and_settle(
        self, payment_header: Optional[str], required_amount: int
    ) -> VerifyResponse:
        """Verify the payment, then settle it and wait for confirmation."""
        try:
            payment = self._decode(payment_header)
        except PaymentError as e:
            return self._invalid(e.kind, str(e))

        verify_response = self.verify_payment(payment, required_amount)
        if not verify_response.is_valid:
            return verify_response

        if self.submitter is None:
            logger.warning(
                "Accepted payment from %s without settlement; funds were not captured",
                verify_response.payer,
            )
            return verify_response

        settle_response = self.submitter.submit(payment)
        if not settle_response.success:
            return self._invalid(
                settle_response.error_reason or ERR_PAYMENT_EXECUTION_FAILED,
                settle_response.error or "Settlement failed",
                verify_response.payer,
            )

        logger.info(
            "Payment of %s from %s settled (tx %s)",
            payment.authorization.value,
            verify_response.payer,
            settle_response.transaction,
        )
        return VerifyResponse(
            is_valid=True,
            payer=verify_response.payer,
            transaction=settle_response.transaction,
            settled=True,
        )
