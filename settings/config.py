"""Environment-driven configuration for the execution core.

Every field can be overridden with a ``SENTINEL_``-prefixed environment
variable or a ``.env`` file in the working directory, e.g.
``SENTINEL_NONCE_CACHE_WINDOW=1.5``.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from execution_plan.policy import ValidationPolicy

CRONOS_TESTNET_USDC = "0xc01efAaF7C5C61bEbFAeb358E1161b537b8bC0e0"


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SENTINEL_", env_file=".env", extra="ignore")

    # Ledger
    rpc_url: str = "https://evm-t3.cronos.org"
    chain_id: int = 338
    token_address: str = CRONOS_TESTNET_USDC
    token_symbol: str = "USDC"
    account_address: str = "0x0000000000000000000000000000000000000001"

    # Nonce coordination (seconds)
    nonce_cache_window: float = Field(default=2.0, ge=0)
    nonce_release_delay: float = Field(default=0.1, ge=0)
    nonce_block_tag: str = "pending"

    # Market data
    market_data_url: str = "https://api.crypto.com/exchange/v1"
    market_quote_currency: str = "USD"
    market_timeout: float = Field(default=10.0, gt=0)

    # Validation thresholds
    large_transfer_threshold: Decimal = Decimal("1000")
    max_plan_steps: int = Field(default=10, ge=1)
    max_transfer_steps: int = Field(default=3, ge=1)

    log_level: str = "INFO"

    def validation_policy(self) -> ValidationPolicy:
        return ValidationPolicy(
            large_transfer_threshold=self.large_transfer_threshold,
            max_steps=self.max_plan_steps,
            max_transfer_steps=self.max_transfer_steps,
            token_symbol=self.token_symbol,
        )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return EngineSettings()
