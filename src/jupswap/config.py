"""Application configuration using pydantic-settings.

Everything the swap pipeline treats as policy (slippage, route restriction,
priority fees, submit retries, confirmation budget) is configured here rather
than hard-coded in the components.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Public RPC endpoints by network
DEFAULT_RPC_ENDPOINTS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "devnet": "https://api.devnet.solana.com",
}

PRIORITY_LEVELS = ("low", "medium", "high", "veryHigh")
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Solana
    # ======================
    solana_network: str = Field(
        default="mainnet-beta", description="Network: mainnet-beta, testnet or devnet"
    )
    solana_rpc_endpoint: Optional[str] = Field(
        default=None, description="RPC URL (defaults to the network's public endpoint)"
    )
    solana_private_key: Optional[str] = Field(
        default=None, description="Base-58 encoded secret key. Unset = quote-only mode"
    )

    # ======================
    # Jupiter API
    # ======================
    jupiter_api_base_url: str = Field(
        default="https://lite-api.jup.ag/swap/v1", description="Jupiter swap API base URL"
    )
    jupiter_api_key: str = Field(default="", description="Optional Jupiter API key")
    http_timeout_seconds: float = Field(default=30.0, description="Jupiter API request timeout")

    # ======================
    # Swap policy
    # ======================
    default_slippage_bps: int = Field(
        default=50, ge=0, le=10000, description="Default slippage tolerance (50 = 0.5%)"
    )
    restrict_intermediate_tokens: bool = Field(
        default=True, description="Restrict intermediate hops to well-known tokens"
    )
    priority_fee_max_lamports: int = Field(
        default=1_000_000, ge=0, description="Priority fee cap (1_000_000 = 0.001 SOL)"
    )
    priority_level: str = Field(default="veryHigh", description="Priority fee tier")
    priority_fee_global: bool = Field(
        default=False, description="Use the global fee market instead of the local one"
    )
    dynamic_compute_unit_limit: bool = Field(
        default=True, description="Let Jupiter estimate the compute budget"
    )
    dynamic_slippage: bool = Field(default=True, description="Let Jupiter estimate slippage")

    # ======================
    # Transaction submission
    # ======================
    send_max_retries: int = Field(default=2, ge=0, description="Broadcast retries")
    send_retry_backoff_seconds: float = Field(default=0.5, ge=0)
    skip_preflight: bool = Field(
        default=True, description="Skip RPC preflight (Jupiter already simulated the tx)"
    )
    confirm_commitment: str = Field(default="confirmed", description="Commitment to wait for")
    confirm_timeout_seconds: float = Field(default=60.0, gt=0)
    confirm_poll_interval_seconds: float = Field(default=1.0, gt=0)

    # ======================
    # API / runtime
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    @field_validator("solana_network")
    @classmethod
    def _check_network(cls, value: str) -> str:
        if value not in DEFAULT_RPC_ENDPOINTS:
            logger.warning(f"Invalid network specified: {value}. Falling back to mainnet-beta.")
            return "mainnet-beta"
        return value

    @field_validator("priority_level")
    @classmethod
    def _check_priority_level(cls, value: str) -> str:
        if value not in PRIORITY_LEVELS:
            raise ValueError(f"priority_level must be one of {', '.join(PRIORITY_LEVELS)}")
        return value

    @field_validator("confirm_commitment")
    @classmethod
    def _check_commitment(cls, value: str) -> str:
        value = value.lower()
        if value not in COMMITMENT_LEVELS:
            raise ValueError(f"confirm_commitment must be one of {', '.join(COMMITMENT_LEVELS)}")
        return value

    @property
    def rpc_endpoint(self) -> str:
        """RPC URL in effect for the configured network."""
        return self.solana_rpc_endpoint or DEFAULT_RPC_ENDPOINTS[self.solana_network]

    @property
    def has_wallet(self) -> bool:
        """Check if a signing key is configured."""
        return bool(self.solana_private_key and self.solana_private_key.strip())

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def retry_policy(self):
        """Build the submit retry policy from settings."""
        from jupswap.ledger.base import RetryPolicy

        return RetryPolicy(
            max_retries=self.send_max_retries,
            backoff_seconds=self.send_retry_backoff_seconds,
            skip_preflight=self.skip_preflight,
        )

    def priority_fee_policy(self):
        """Build the default priority fee policy from settings."""
        from jupswap.routing.base import PriorityFeePolicy

        return PriorityFeePolicy(
            max_lamports=self.priority_fee_max_lamports,
            priority_level=self.priority_level,
            global_fee_market=self.priority_fee_global,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "solana": {
                "network": self.solana_network,
                "rpc_endpoint": self.rpc_endpoint,
                "private_key": "***REDACTED***" if self.has_wallet else "(not set)",
            },
            "jupiter": {
                "api_base_url": self.jupiter_api_base_url,
                "api_key": "***" if self.jupiter_api_key else "(not set)",
            },
            "policy": {
                "slippage_bps": self.default_slippage_bps,
                "restrict_intermediate_tokens": self.restrict_intermediate_tokens,
                "priority_fee_max_lamports": self.priority_fee_max_lamports,
                "priority_level": self.priority_level,
            },
            "submission": {
                "max_retries": self.send_max_retries,
                "skip_preflight": self.skip_preflight,
                "commitment": self.confirm_commitment,
                "confirm_timeout_seconds": self.confirm_timeout_seconds,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
