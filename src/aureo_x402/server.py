"""Wiring of settings into a ready-to-use PaymentGuard."""

import logging
import time
from typing import Callable, Optional

from eth_account import Account

from aureo_x402.authorization import known_token_domain
from aureo_x402.config import X402Settings, get_settings
from aureo_x402.errors import ChainUnavailableError, ConfigError
from aureo_x402.guard import PaymentGuard
from aureo_x402.interfaces import TokenContract
from aureo_x402.settlement import SettlementSubmitter
from aureo_x402.token import Web3TokenContract
from aureo_x402.types import EIP712Domain
from aureo_x402.utils import addresses_equal, call_with_retry
from aureo_x402.verifier import PaymentVerifier

logger = logging.getLogger(__name__)


def resolve_token_domain(settings: X402Settings, token: TokenContract) -> EIP712Domain:
    """Configured name/version, else the known-token table, else the contract itself."""
    if settings.token_name and settings.token_version:
        return EIP712Domain(name=settings.token_name, version=settings.token_version)
    domain = known_token_domain(settings.chain_id, settings.token_address)
    if domain is not None:
        return domain
    try:
        return call_with_retry(
            lambda: EIP712Domain(name=token.name(), version=token.version()),
            settings.rpc_max_attempts,
            settings.rpc_backoff_seconds,
        )
    except ChainUnavailableError as e:
        raise ConfigError(f"Cannot read EIP-712 domain of {settings.token_address}: {e}") from e


def build_payment_guard(
    settings: Optional[X402Settings] = None,
    token: Optional[TokenContract] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> PaymentGuard:
    """Build a PaymentGuard from settings.

    Args:
        settings: Defaults to the environment (see :mod:`aureo_x402.config`).
        token: Token binding; a web3 binding over ``settings.rpc_url`` by default,
            in which case the RPC chain id is checked against the settings.

    Raises:
        ConfigError: Settlement key missing without ``allow_unsettled``, a key
            that does not control the payee, or an RPC serving the wrong chain.
    """
    settings = settings or get_settings()

    private_key = None
    if settings.service_private_key is not None:
        private_key = settings.service_private_key.get_secret_value() or None

    if private_key is None and not settings.allow_unsettled:
        raise ConfigError(
            "X402_SERVICE_PRIVATE_KEY is not set; set X402_ALLOW_UNSETTLED=true to "
            "verify payments without capturing funds"
        )

    if private_key is not None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        try:
            settlement_address = Account.from_key(private_key).address
        except ValueError as e:
            raise ConfigError("Invalid settlement key") from e
        # receiveWithAuthorization only accepts calls from the payee itself
        if not addresses_equal(settlement_address, settings.payee_address):
            raise ConfigError(
                f"Settlement key controls {settlement_address}, not payee {settings.payee_address}"
            )

    if token is None:
        web3_token = Web3TokenContract(
            settings.effective_rpc_url,
            settings.token_address,
            private_key=private_key,
            receipt_timeout=settings.receipt_timeout_seconds,
        )
        try:
            web3_token.check_chain_id(settings.chain_id)
        except ChainUnavailableError as e:
            raise ConfigError(f"Cannot reach RPC endpoint: {e}") from e
        token = web3_token

    submitter = None
    if private_key is not None:
        submitter = SettlementSubmitter(
            token,
            network=settings.network,
            max_attempts=settings.rpc_max_attempts,
            backoff=settings.rpc_backoff_seconds,
            sleep=sleep,
        )

    domain = resolve_token_domain(settings, token)

    verifier = PaymentVerifier(
        token,
        payee=settings.payee_address,
        chain_id=settings.chain_id,
        domain=domain,
        submitter=submitter,
        allow_unsettled=settings.allow_unsettled,
        verify_signature=settings.verify_signature,
        clock_skew=settings.clock_skew_seconds,
        clock=clock,
        max_attempts=settings.rpc_max_attempts,
        backoff=settings.rpc_backoff_seconds,
        sleep=sleep,
    )

    logger.info(
        "x402 guard ready: payee %s, token %s on %s (%s), settlement %s",
        settings.payee_address,
        settings.token_address,
        settings.network,
        settings.chain_id,
        "enabled" if submitter is not None else "disabled",
    )

    return PaymentGuard(
        verifier,
        network=settings.network,
        chain_id=settings.chain_id,
        payee=settings.payee_address,
        token=settings.token_address,
        validity_seconds=settings.payment_validity_seconds,
        token_domain=domain,
        decimals=settings.token_decimals,
        pricing=settings.pricing,
        clock=clock,
    )
