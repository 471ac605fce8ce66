"""EVM utility functions for address, amount, and nonce handling."""

import logging
import os
import re
import time
from decimal import Decimal
from typing import Any, Callable, TypeVar

from eth_utils import to_checksum_address

from .constants import (
    DEFAULT_DECIMALS,
    DEFAULT_RPC_BACKOFF_SECONDS,
    DEFAULT_RPC_MAX_ATTEMPTS,
)
from .errors import ChainUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HEX32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def create_nonce() -> str:
    """Generate random 32-byte nonce as hex string (0x...).

    Returns:
        Hex string with 0x prefix.
    """
    return "0x" + os.urandom(32).hex()


def is_valid_address(address: str) -> bool:
    """Check if string is valid Ethereum address.

    Args:
        address: String to check.

    Returns:
        True if valid Ethereum address.
    """
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    addr = address[2:]
    if len(addr) != 40:
        return False
    try:
        int(addr, 16)
        return True
    except ValueError:
        return False


def normalize_address(address: str) -> str:
    """Normalize Ethereum address to EIP-55 checksummed format.

    Raises:
        ValueError: If address is invalid.
    """
    value = address.strip()
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_valid_address(value):
        raise ValueError(f"Invalid address: {address}")
    return to_checksum_address(value)


def addresses_equal(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return a.lower() == b.lower()


def is_bytes32_hex(value: str) -> bool:
    return isinstance(value, str) and bool(_HEX32_RE.match(value))


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string to bytes (handles 0x prefix)."""
    return bytes.fromhex(hex_str.removeprefix("0x"))


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def split_signature(signature: bytes) -> tuple[int, str, str]:
    """Split a 65-byte r||s||v signature into (v, r, s).

    ``v`` is normalised to 27/28.
    """
    if len(signature) != 65:
        raise ValueError(f"Invalid signature length: {len(signature)}")
    r = signature[:32]
    s = signature[32:64]
    v = signature[64]
    if v < 27:
        v += 27
    return v, bytes_to_hex(r), bytes_to_hex(s)


def join_signature(v: int, r: str, s: str) -> bytes:
    """Inverse of :func:`split_signature`."""
    return hex_to_bytes(r) + hex_to_bytes(s) + bytes([v])


def format_amount(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Convert smallest unit to decimal string."""
    d = Decimal(amount)
    divisor = Decimal(10**decimals)
    return str(d / divisor)


def format_usdc_amount(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Human readable amount, e.g. ``$0.01 USDC`` or ``$0.0050 USDC``."""
    usdc = Decimal(amount) / Decimal(10**decimals)
    places = 4 if usdc < Decimal("0.01") else 2
    return f"${usdc:.{places}f} USDC"


def shorten_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def payment_summary(requirement: Any, decimals: int = DEFAULT_DECIMALS) -> dict[str, str]:
    """Summary of a payment requirement suitable for a confirmation dialog."""
    return {
        "amount": format_usdc_amount(int(requirement.amount), decimals),
        "description": requirement.description,
        "payee": shorten_address(requirement.payee),
    }


def call_with_retry(
    func: Callable[[], T],
    max_attempts: int = DEFAULT_RPC_MAX_ATTEMPTS,
    backoff: float = DEFAULT_RPC_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying only on ChainUnavailableError.

    Waits ``backoff * 2**n`` seconds before retry ``n + 1``. The last
    ChainUnavailableError is re-raised once attempts are exhausted.
    """
    for attempt in range(max_attempts):
        if attempt > 0:
            sleep(backoff * 2 ** (attempt - 1))
        try:
            return func()
        except ChainUnavailableError as e:
            logger.debug("Transient chain error (attempt %d/%d): %s", attempt + 1, max_attempts, e)
            if attempt == max_attempts - 1:
                raise
    raise ChainUnavailableError("No attempts made")
