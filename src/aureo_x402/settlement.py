"""On-chain settlement of verified payments via receiveWithAuthorization."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from aureo_x402.constants import (
    DEFAULT_RPC_BACKOFF_SECONDS,
    DEFAULT_RPC_MAX_ATTEMPTS,
    ERR_CHAIN_UNAVAILABLE,
    ERR_NONCE_ALREADY_USED,
    ERR_PAYMENT_EXECUTION_FAILED,
    NONCE_REUSE_REVERT_MARKERS,
    TX_STATUS_SUCCESS,
)
from aureo_x402.errors import ChainUnavailableError, ContractRevertError
from aureo_x402.interfaces import TokenContract
from aureo_x402.types import EIP3009Authorization, PaymentPayload, SettleResponse
from aureo_x402.utils import call_with_retry, hex_to_bytes

logger = logging.getLogger(__name__)


def is_nonce_reuse_revert(reason: str) -> bool:
    """True if a revert reason reports an already-consumed authorization."""
    reason = reason.lower()
    return any(marker in reason for marker in NONCE_REUSE_REVERT_MARKERS)


class SettlementSubmitter:
    """Executes authorized transfers with the service-held key.

    Transient chain errors are retried with exponential backoff. A contract
    revert is final. Once a transaction of ours is signed it is never re-sent,
    even if its send failed; later attempts only wait for its receipt. Success is
    reported only for that receipt, never for a nonce consumed by someone else.
    """

    def __init__(
        self,
        token: TokenContract,
        network: Optional[str] = None,
        max_attempts: int = DEFAULT_RPC_MAX_ATTEMPTS,
        backoff: float = DEFAULT_RPC_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.token = token
        self.network = network
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.sleep = sleep

    def submit(self, payment: Union[PaymentPayload, EIP3009Authorization]) -> SettleResponse:
        """Settle ``payment`` and block until its receipt is known."""
        auth = payment.authorization if isinstance(payment, PaymentPayload) else payment
        nonce = auth.nonce_bytes
        tx_hash: Optional[str] = None
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            if attempt > 0:
                self.sleep(self.backoff * 2 ** (attempt - 1))
            try:
                if tx_hash is None:
                    # Nothing of ours was signed, so a consumed nonce was settled elsewhere
                    if attempt > 0 and self.token.authorization_state(auth.from_, nonce):
                        logger.warning(
                            "Authorization %s from %s consumed by another settlement",
                            auth.nonce,
                            auth.from_,
                        )
                        return self._failure(
                            auth, ERR_NONCE_ALREADY_USED, "Authorization already used"
                        )
                    tx_hash = self.token.receive_with_authorization(
                        auth.from_,
                        auth.to,
                        auth.value_int,
                        auth.valid_after,
                        auth.valid_before,
                        nonce,
                        auth.v,
                        hex_to_bytes(auth.r),
                        hex_to_bytes(auth.s),
                    )
                    logger.info("Submitted settlement transaction %s", tx_hash)
                receipt = self.token.wait_for_transaction_receipt(tx_hash)
            except ChainUnavailableError as e:
                last_error = e
                if tx_hash is None and e.tx_hash is not None:
                    tx_hash = e.tx_hash
                    logger.info("Send of %s failed; waiting for its receipt", tx_hash)
                logger.warning(
                    "Settlement attempt %d/%d failed: %s", attempt + 1, self.max_attempts, e
                )
                continue
            except ContractRevertError as e:
                return self._reverted(auth, e.reason)

            if receipt.status == TX_STATUS_SUCCESS:
                logger.info(
                    "Settled %s from %s in block %s (tx %s)",
                    auth.value,
                    auth.from_,
                    receipt.block_number,
                    tx_hash,
                )
                return self._success(auth, tx_hash)
            return self._failed_receipt(auth, tx_hash)

        logger.error("Settlement gave up after %d attempts: %s", self.max_attempts, last_error)
        return self._failure(
            auth,
            ERR_CHAIN_UNAVAILABLE,
            f"Chain unavailable after {self.max_attempts} attempts: {last_error}",
            tx_hash,
        )

    def _reverted(self, auth: EIP3009Authorization, reason: str) -> SettleResponse:
        if is_nonce_reuse_revert(reason):
            logger.warning("Settlement rejected, authorization %s already used", auth.nonce)
            return self._failure(auth, ERR_NONCE_ALREADY_USED, reason)
        logger.error("Settlement reverted: %s", reason)
        return self._failure(auth, ERR_PAYMENT_EXECUTION_FAILED, reason)

    def _failed_receipt(self, auth: EIP3009Authorization, tx_hash: str) -> SettleResponse:
        try:
            used = call_with_retry(
                lambda: self.token.authorization_state(auth.from_, auth.nonce_bytes),
                self.max_attempts,
                self.backoff,
                self.sleep,
            )
        except ChainUnavailableError:
            used = False
        if used:
            logger.warning("Settlement %s failed, authorization %s already used", tx_hash, auth.nonce)
            return self._failure(
                auth, ERR_NONCE_ALREADY_USED, "Authorization already used", tx_hash
            )
        logger.error("Settlement transaction %s failed", tx_hash)
        return self._failure(
            auth, ERR_PAYMENT_EXECUTION_FAILED, "Settlement transaction failed", tx_hash
        )

    def _success(self, auth: EIP3009Authorization, tx_hash: str) -> SettleResponse:
        return SettleResponse(
            success=True,
            transaction=tx_hash,
            network=self.network,
            payer=auth.from_,
        )

    def _failure(
        self,
        auth: EIP3009Authorization,
        reason: str,
        message: str,
        tx_hash: Optional[str] = None,
    ) -> SettleResponse:
        return SettleResponse(
            success=False,
            error_reason=reason,
            error=message,
            transaction=tx_hash,
            network=self.network,
            payer=auth.from_,
        )
