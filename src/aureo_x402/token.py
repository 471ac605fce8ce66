"""web3.py binding for an EIP-3009 settlement token."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from aureo_x402.constants import (
    DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    EIP3009_TOKEN_ABI,
    TX_STATUS_FAILED,
    TX_STATUS_SUCCESS,
)
from aureo_x402.errors import ChainUnavailableError, ConfigError, ContractRevertError
from aureo_x402.types import TransactionReceipt

logger = logging.getLogger(__name__)

# Gas limit for receiveWithAuthorization; well above what USDC needs
DEFAULT_SETTLEMENT_GAS = 200000


class Web3TokenContract:
    """Token binding over a JSON-RPC endpoint.

    Read calls need no key. ``receive_with_authorization`` requires
    ``private_key``, whose address must equal the payee since the token only
    accepts the call from ``to``.
    """

    def __init__(
        self,
        rpc_url: str,
        token_address: str,
        private_key: Optional[str] = None,
        poa: bool = True,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
        w3: Optional[Web3] = None,
    ):
        self._w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        if poa and w3 is None:
            # Mantle and most L2 testnets return PoA-style extraData
            self._w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self._address = Web3.to_checksum_address(token_address)
        self._contract = self._w3.eth.contract(address=self._address, abi=EIP3009_TOKEN_ABI)
        self._account = None
        if private_key:
            if not private_key.startswith("0x"):
                private_key = "0x" + private_key
            self._account = Account.from_key(private_key)
        self._receipt_timeout = receipt_timeout
        # One service key signs every settlement; nonce allocation and send
        # must not interleave between threads.
        self._tx_lock = threading.Lock()

    @property
    def address(self) -> str:
        return self._address

    @property
    def sender_address(self) -> Optional[str]:
        """Address of the settlement key, if one is configured."""
        return self._account.address if self._account is not None else None

    def _call(self, function_name: str, *args: Any) -> Any:
        func = getattr(self._contract.functions, function_name)
        try:
            return func(*args).call()
        except ContractLogicError as e:
            raise ContractRevertError(_revert_reason(e)) from e
        except (OSError, TimeExhausted, Web3Exception) as e:
            raise ChainUnavailableError(f"RPC call {function_name} failed: {e}") from e

    def name(self) -> str:
        return self._call("name")

    def version(self) -> str:
        return self._call("version")

    def decimals(self) -> int:
        return int(self._call("decimals"))

    def authorization_state(self, authorizer: str, nonce: bytes) -> bool:
        return bool(
            self._call("authorizationState", Web3.to_checksum_address(authorizer), nonce)
        )

    def balance_of(self, address: str) -> int:
        return int(self._call("balanceOf", Web3.to_checksum_address(address)))

    def get_chain_id(self) -> int:
        try:
            return self._w3.eth.chain_id
        except (OSError, Web3Exception) as e:
            raise ChainUnavailableError(f"RPC call eth_chainId failed: {e}") from e

    def check_chain_id(self, expected: int) -> None:
        """Raise ConfigError if the RPC endpoint serves a different chain."""
        actual = self.get_chain_id()
        if actual != expected:
            raise ConfigError(f"RPC endpoint is chain {actual}, expected {expected}")

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
        if self._account is None:
            raise ConfigError("No settlement key configured")

        func = self._contract.functions.receiveWithAuthorization(
            Web3.to_checksum_address(from_),
            Web3.to_checksum_address(to),
            value,
            valid_after,
            valid_before,
            nonce,
            v,
            r,
            s,
        )
        tx_hash: Optional[str] = None
        try:
            with self._tx_lock:
                tx = func.build_transaction(
                    {
                        "from": self._account.address,
                        "nonce": self._w3.eth.get_transaction_count(
                            self._account.address, "pending"
                        ),
                        "gas": DEFAULT_SETTLEMENT_GAS,
                        "gasPrice": self._w3.eth.gas_price,
                    }
                )
                signed_tx = self._account.sign_transaction(tx)
                # Known before sending so a lost send can still be tracked
                tx_hash = Web3.to_hex(signed_tx.hash)
                self._w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except ContractLogicError as e:
            raise ContractRevertError(_revert_reason(e)) from e
        except (OSError, TimeExhausted, Web3Exception) as e:
            raise ChainUnavailableError(
                f"Failed to submit settlement: {e}", tx_hash=tx_hash
            ) from e

        return tx_hash

    def wait_for_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        if not tx_hash.startswith("0x"):
            tx_hash = "0x" + tx_hash
        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout
            )
        except (OSError, TimeExhausted, Web3Exception) as e:
            raise ChainUnavailableError(f"No receipt for {tx_hash}: {e}") from e
        return TransactionReceipt(
            status=TX_STATUS_SUCCESS if receipt["status"] == 1 else TX_STATUS_FAILED,
            block_number=receipt.get("blockNumber"),
            tx_hash=tx_hash,
        )


def _revert_reason(error: ContractLogicError) -> str:
    message = getattr(error, "message", None) or str(error)
    return message.removeprefix("execution reverted: ")
