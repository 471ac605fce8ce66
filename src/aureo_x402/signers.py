"""EVM signer implementations for common wallet libraries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from eth_account import Account

from aureo_x402.types import TypedDataDomain

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount


class EthAccountSigner:
    """Client-side signer using eth_account library.

    Example:
        ```python
        from eth_account import Account
        from aureo_x402.signers import EthAccountSigner

        signer = EthAccountSigner(Account.from_key("0x..."))
        ```

    Args:
        account: eth_account LocalAccount instance.
    """

    def __init__(self, account: "LocalAccount") -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "EthAccountSigner":
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        """The signer's Ethereum address (checksummed)."""
        return self._account.address

    def sign_typed_data(
        self,
        domain: TypedDataDomain,
        types: dict[str, list[dict[str, str]]],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes:
        """Sign EIP-712 typed data.

        Args:
            domain: EIP-712 domain separator.
            types: Type definitions, without the EIP712Domain entry.
            primary_type: Primary type name (unused, inferred by eth_account).
            message: Message data.

        Returns:
            65-byte ECDSA signature (r, s, v).
        """
        domain_dict: dict[str, Any]
        if isinstance(domain, TypedDataDomain):
            domain_dict = domain.to_dict()
        else:
            domain_dict = domain

        signed = self._account.sign_typed_data(
            domain_data=domain_dict,
            message_types=types,
            message_data=message,
        )
        return bytes(signed.signature)
