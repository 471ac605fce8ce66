"""Mock implementations for testing."""

from .clock import (
    NOW,
    PAYEE_KEY,
    PAYER_BALANCE,
    PAYER_KEY,
    USDC_DOMAIN,
    FakeClock,
    no_sleep,
)
from .token import MANTLE_SEPOLIA_USDC, InMemoryToken

__all__ = [
    "FakeClock",
    "InMemoryToken",
    "MANTLE_SEPOLIA_USDC",
    "NOW",
    "PAYEE_KEY",
    "PAYER_BALANCE",
    "PAYER_KEY",
    "USDC_DOMAIN",
    "no_sleep",
]
