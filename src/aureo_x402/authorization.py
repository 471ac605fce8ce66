"""EIP-3009 ReceiveWithAuthorization signing and recovery."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address

from aureo_x402.chains import find_known_token
from aureo_x402.constants import (
    EIP712_DOMAIN_TYPE,
    PRIMARY_TYPE,
    RECEIVE_WITH_AUTHORIZATION_TYPE,
    X402_VERSION,
)
from aureo_x402.errors import (
    PaymentError,
    RequirementExpiredError,
    SignerUnavailableError,
    SigningError,
)
from aureo_x402.interfaces import ClientSigner, TokenContract
from aureo_x402.types import (
    EIP3009Authorization,
    EIP712Domain,
    PaymentPayload,
    PaymentRequirement,
    TypedDataDomain,
)
from aureo_x402.utils import create_nonce, split_signature

logger = logging.getLogger(__name__)

# (chain_id, token_address) -> domain name/version, or None if unknown
DomainResolver = Callable[[int, str], Optional[EIP712Domain]]


def build_domain(domain: EIP712Domain, chain_id: int, token: str) -> TypedDataDomain:
    return TypedDataDomain(
        name=domain.name,
        version=domain.version,
        chain_id=chain_id,
        verifying_contract=to_checksum_address(token),
    )


def build_message(
    from_: str,
    to: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: str,
) -> dict[str, Any]:
    """Build the ReceiveWithAuthorization struct in its EIP-712 form."""
    return {
        "from": to_checksum_address(from_),
        "to": to_checksum_address(to),
        "value": value,
        "validAfter": valid_after,
        "validBefore": valid_before,
        "nonce": nonce,
    }


def build_typed_data(domain: TypedDataDomain, message: dict[str, Any]) -> dict[str, Any]:
    """Full EIP-712 typed data, as accepted by eth_account's encode_typed_data."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            PRIMARY_TYPE: RECEIVE_WITH_AUTHORIZATION_TYPE,
        },
        "primaryType": PRIMARY_TYPE,
        "domain": domain.to_dict(),
        "message": message,
    }


def recover_authorizer(authorization: EIP3009Authorization, domain: TypedDataDomain) -> str:
    """Recover the address that signed ``authorization`` under ``domain``.

    Raises:
        ValueError: If the signature is malformed or cannot be recovered.
    """
    message = build_message(
        authorization.from_,
        authorization.to,
        authorization.value_int,
        authorization.valid_after,
        authorization.valid_before,
        authorization.nonce,
    )
    signable = encode_typed_data(full_message=build_typed_data(domain, message))
    return Account.recover_message(signable, signature=authorization.signature)


def known_token_domain(chain_id: int, token: str) -> Optional[EIP712Domain]:
    """Resolve a domain from the built-in known-token table."""
    known = find_known_token(chain_id, token)
    if known is None:
        return None
    return EIP712Domain(name=known["name"], version=known["version"])


def token_domain_resolver(token: TokenContract) -> DomainResolver:
    """Resolver reading name() and version() from ``token`` on first use."""
    cache: dict[str, EIP712Domain] = {}

    def resolve(chain_id: int, address: str) -> Optional[EIP712Domain]:
        if address.lower() != token.address.lower():
            return None
        if "domain" not in cache:
            cache["domain"] = EIP712Domain(name=token.name(), version=token.version())
        return cache["domain"]

    return resolve


class AuthorizationSigner:
    """Turns a payment requirement into a signed, single-use payment.

    Args:
        signer: Wallet able to sign EIP-712 typed data for the payer address.
        domain_resolver: Optional lookup of the token's EIP-712 name/version.
            Consulted before ``requirement.extra`` and the known-token table.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        signer: Optional[ClientSigner],
        domain_resolver: Optional[DomainResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.signer = signer
        self.domain_resolver = domain_resolver
        self.clock = clock

    def resolve_domain(self, requirement: PaymentRequirement) -> EIP712Domain:
        if self.domain_resolver is not None:
            try:
                domain = self.domain_resolver(requirement.chain_id, requirement.token)
            except PaymentError:
                raise
            except Exception as e:
                raise SigningError(f"Failed to resolve token domain: {e}") from e
            if domain is not None:
                return domain
        if requirement.extra is not None:
            return requirement.extra
        domain = known_token_domain(requirement.chain_id, requirement.token)
        if domain is None:
            raise SigningError(
                f"Unknown EIP-712 domain for token {requirement.token} "
                f"on chain {requirement.chain_id}"
            )
        return domain

    def sign(
        self, requirement: PaymentRequirement, value: Optional[int] = None
    ) -> PaymentPayload:
        """Sign a ReceiveWithAuthorization for ``requirement``.

        ``value`` defaults to the required amount.

        Raises:
            SignerUnavailableError: No signer is bound.
            RequirementExpiredError: The requirement expired on the local clock.
            SigningError: The domain could not be resolved or the wallet failed.
        """
        if self.signer is None:
            raise SignerUnavailableError("No signer available for payment")

        now = int(self.clock())
        if now >= requirement.valid_until:
            raise RequirementExpiredError(
                f"Payment requirement expired at {requirement.valid_until} (now {now})"
            )

        domain = build_domain(
            self.resolve_domain(requirement), requirement.chain_id, requirement.token
        )
        nonce = create_nonce()
        from_ = self.signer.address
        amount = requirement.amount_int if value is None else value
        message = build_message(
            from_, requirement.payee, amount, 0, requirement.valid_until, nonce
        )

        try:
            signature = self.signer.sign_typed_data(
                domain,
                {PRIMARY_TYPE: RECEIVE_WITH_AUTHORIZATION_TYPE},
                PRIMARY_TYPE,
                message,
            )
            v, r, s = split_signature(bytes(signature))
        except PaymentError:
            raise
        except Exception as e:
            raise SigningError(f"Failed to sign payment: {e}") from e

        logger.debug(
            "Signed payment of %s for %s on chain %s",
            amount,
            requirement.resource,
            requirement.chain_id,
        )

        return PaymentPayload(
            version=X402_VERSION,
            authorization=EIP3009Authorization(
                from_=from_,
                to=requirement.payee,
                value=str(amount),
                valid_after=0,
                valid_before=requirement.valid_until,
                nonce=nonce,
                v=v,
                r=r,
                s=s,
            ),
        )
