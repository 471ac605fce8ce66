"""Environment configuration for x402-protected services.

Every option is read from ``X402_``-prefixed environment variables or a
``.env`` file, e.g. ``X402_PAYEE_ADDRESS`` and ``X402_PRICING``.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aureo_x402.chains import NETWORK_TO_ID, get_default_rpc_url, get_default_token_address
from aureo_x402.constants import (
    DEFAULT_DECIMALS,
    DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    DEFAULT_RPC_BACKOFF_SECONDS,
    DEFAULT_RPC_MAX_ATTEMPTS,
    DEFAULT_VALIDITY_SECONDS,
)
from aureo_x402.errors import ConfigError
from aureo_x402.utils import normalize_address

# Prices in USDC minor units (6 decimals)
PRICING_TIERS = {
    "market_analysis": 10000,  # $0.01
    "smart_buy_execution": 50000,  # $0.05
    "premium_analysis": 20000,  # $0.02
    "instant_swap": 10000,  # $0.01
}

DEFAULT_PRICING = {
    "/api/x402/analyze": PRICING_TIERS["market_analysis"],
    "/api/x402/smart-buy": PRICING_TIERS["smart_buy_execution"],
}

DEFAULT_NETWORK = "mantle-sepolia"


class X402Settings(BaseSettings):
    payee_address: str
    token_address: str = get_default_token_address(NETWORK_TO_ID[DEFAULT_NETWORK])
    network: str = DEFAULT_NETWORK
    chain_id: int = NETWORK_TO_ID[DEFAULT_NETWORK]
    rpc_url: Optional[str] = None
    service_private_key: Optional[SecretStr] = None
    allow_unsettled: bool = False
    payment_validity_seconds: int = Field(default=DEFAULT_VALIDITY_SECONDS, gt=0)
    clock_skew_seconds: int = Field(default=0, ge=0)
    token_name: Optional[str] = None
    token_version: Optional[str] = None
    token_decimals: int = Field(default=DEFAULT_DECIMALS, ge=0)
    pricing: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_PRICING))
    verify_signature: bool = True
    rpc_max_attempts: int = Field(default=DEFAULT_RPC_MAX_ATTEMPTS, ge=1)
    rpc_backoff_seconds: float = Field(default=DEFAULT_RPC_BACKOFF_SECONDS, ge=0)
    receipt_timeout_seconds: float = Field(default=DEFAULT_RECEIPT_TIMEOUT_SECONDS, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="X402_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("payee_address", "token_address")
    def validate_address(cls, v):
        return normalize_address(v)

    @field_validator("pricing")
    def validate_pricing(cls, v):
        for resource, amount in v.items():
            if amount <= 0:
                raise ValueError(f"price for {resource} must be positive")
        return v

    @model_validator(mode="after")
    def validate_chain(self):
        known = NETWORK_TO_ID.get(self.network)
        if known is not None and known != self.chain_id:
            raise ValueError(
                f"chain_id {self.chain_id} does not match network {self.network} ({known})"
            )
        if bool(self.token_name) != bool(self.token_version):
            raise ValueError("token_name and token_version must be set together")
        return self

    @property
    def effective_rpc_url(self) -> str:
        if self.rpc_url:
            return self.rpc_url
        try:
            return get_default_rpc_url(self.network)
        except ValueError as e:
            raise ConfigError(str(e)) from e


def load_settings(**overrides) -> X402Settings:
    """Build settings from the environment, raising ConfigError on invalid input."""
    load_dotenv()
    try:
        return X402Settings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid x402 configuration: {e}") from e


@lru_cache()
def get_settings() -> X402Settings:
    return load_settings()
