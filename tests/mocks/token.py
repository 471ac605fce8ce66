"""In-memory EIP-3009 token used in place of a chain."""

import time

from aureo_x402.authorization import build_domain, recover_authorizer
from aureo_x402.errors import ChainUnavailableError, ContractRevertError
from aureo_x402.types import EIP3009Authorization, EIP712Domain, TransactionReceipt
from aureo_x402.utils import bytes_to_hex

MANTLE_SEPOLIA_USDC = "0x53b8e9e6513A2e7A4d23F8F9BFe3F5985C9788e4"


class InMemoryToken:
    """Mimics FiatTokenV2's receiveWithAuthorization rules.

    ``failures`` maps a method name to the number of upcoming calls that raise
    ChainUnavailableError. ``lost_sends`` counts upcoming transfers that are
    applied on-chain but whose submission reports a transient error carrying
    the transaction hash.
    """

    def __init__(
        self,
        sender: str,
        address: str = MANTLE_SEPOLIA_USDC,
        name: str = "USDC",
        version: str = "1",
        decimals: int = 6,
        chain_id: int = 5003,
        clock=time.time,
    ):
        self._address = address
        self._name = name
        self._version = version
        self._decimals = decimals
        self.chain_id = chain_id
        self.sender = sender
        self.clock = clock
        self.balances: dict[str, int] = {}
        self.used: set[tuple[str, bytes]] = set()
        self.receipts: dict[str, TransactionReceipt] = {}
        self.failures: dict[str, int] = {}
        self.lost_sends = 0
        self.fail_receipts = False
        self.calls: list[str] = []
        self._tx_count = 0

    @property
    def address(self) -> str:
        return self._address

    def mint(self, account: str, amount: int) -> None:
        self.balances[account.lower()] = self.balances.get(account.lower(), 0) + amount

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        remaining = self.failures.get(method, 0)
        if remaining > 0:
            self.failures[method] = remaining - 1
            raise ChainUnavailableError(f"{method}: connection reset")

    def name(self) -> str:
        self._enter("name")
        return self._name

    def version(self) -> str:
        self._enter("version")
        return self._version

    def decimals(self) -> int:
        self._enter("decimals")
        return self._decimals

    def authorization_state(self, authorizer: str, nonce: bytes) -> bool:
        self._enter("authorization_state")
        return (authorizer.lower(), bytes(nonce)) in self.used

    def balance_of(self, address: str) -> int:
        self._enter("balance_of")
        return self.balances.get(address.lower(), 0)

    def receive_with_authorization(
        self, from_, to, value, valid_after, valid_before, nonce, v, r, s
    ) -> str:
        self._enter("receive_with_authorization")
        if to.lower() != self.sender.lower():
            raise ContractRevertError("FiatTokenV2: caller must be the payee")
        now = int(self.clock())
        if now <= valid_after:
            raise ContractRevertError("FiatTokenV2: authorization is not yet valid")
        if now >= valid_before:
            raise ContractRevertError("FiatTokenV2: authorization is expired")
        if (from_.lower(), bytes(nonce)) in self.used:
            raise ContractRevertError("FiatTokenV2: authorization is used or canceled")

        authorization = EIP3009Authorization(
            from_=from_,
            to=to,
            value=str(value),
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=bytes_to_hex(nonce),
            v=v,
            r=bytes_to_hex(r),
            s=bytes_to_hex(s),
        )
        domain = build_domain(
            EIP712Domain(name=self._name, version=self._version), self.chain_id, self._address
        )
        if recover_authorizer(authorization, domain).lower() != from_.lower():
            raise ContractRevertError("FiatTokenV2: invalid signature")
        if self.balances.get(from_.lower(), 0) < value:
            raise ContractRevertError("ERC20: transfer amount exceeds balance")

        self._tx_count += 1
        tx_hash = "0x" + f"{self._tx_count:064x}"
        if self.fail_receipts:
            # Mined but reverted; nothing changes hands
            self.receipts[tx_hash] = TransactionReceipt(0, self._tx_count, tx_hash)
            return tx_hash

        self.used.add((from_.lower(), bytes(nonce)))
        self.balances[from_.lower()] -= value
        self.mint(to, value)
        self.receipts[tx_hash] = TransactionReceipt(1, self._tx_count, tx_hash)

        if self.lost_sends > 0:
            self.lost_sends -= 1
            raise ChainUnavailableError("send_raw_transaction: read timed out", tx_hash=tx_hash)
        return tx_hash

    def wait_for_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        self._enter("wait_for_transaction_receipt")
        return self.receipts[tx_hash]
