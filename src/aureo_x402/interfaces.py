"""Boundary protocols for wallets and the settlement token contract."""

from typing import Any, Protocol, runtime_checkable

from aureo_x402.types import TransactionReceipt, TypedDataDomain


@runtime_checkable
class ClientSigner(Protocol):
    """Payer-side signing capability (local key, hardware or browser wallet)."""

    @property
    def address(self) -> str: ...

    def sign_typed_data(
        self,
        domain: TypedDataDomain,
        types: dict[str, list[dict[str, str]]],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes:
        """Return a 65-byte r||s||v signature."""
        ...


@runtime_checkable
class TokenContract(Protocol):
    """EIP-3009 token binding used by the verifier and settlement submitter.

    Implementations raise ChainUnavailableError for transient RPC failures and
    ContractRevertError when a call is rejected by the contract.
    """

    @property
    def address(self) -> str: ...

    def name(self) -> str: ...

    def version(self) -> str: ...

    def decimals(self) -> int: ...

    def authorization_state(self, authorizer: str, nonce: bytes) -> bool:
        """True if the (authorizer, nonce) pair has been consumed."""
        ...

    def balance_of(self, address: str) -> int: ...

    def receive_with_authorization(
        self,
        from_: str,
        to: str,
        value: int,
        valid_after: int,
        valid_before: int,
        nonce: bytes,
        v: int,
        r: bytes,
        s: bytes,
    ) -> str:
        """Submit the transfer and return the transaction hash."""
        ...

    def wait_for_transaction_receipt(self, tx_hash: str) -> TransactionReceipt: ...
