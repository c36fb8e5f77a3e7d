"""Application settings and configuration."""
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=3001, description="Port to bind the server", alias="PORT")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level", alias="LOG_LEVEL")

    # Node settings
    ethereum_rpc_url: Optional[str] = Field(
        default=None,
        description="Ethereum mainnet RPC URL",
        alias="MAINNET_RPC"
    )

    chain_id: int = Field(
        default=1,
        description="Chain ID used when signing transactions",
        alias="CHAIN_ID"
    )

    # Signing settings
    private_key: Optional[str] = Field(
        default=None,
        description="Private key of the executing wallet",
        alias="PRIVATE_KEY"
    )

    flashbots_auth_key: Optional[str] = Field(
        default=None,
        description="Key used to sign relay requests (random key if unset)",
        alias="FLASHBOTS_AUTH_KEY"
    )

    flashbots_relay_url: str = Field(
        default="https://relay.flashbots.net",
        description="Private relay endpoint",
        alias="FLASHBOTS_RELAY_URL"
    )

    # Execution contract settings
    execution_contract_address: str = Field(
        default="0x83EF5c401fAa5B9674BAfAcFb089b30bAc67C9A0",
        description="Flash loan arbitrage contract",
        alias="MEV_CONTRACT"
    )

    flash_loan_asset: str = Field(
        default="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        description="Asset borrowed for the strategy call (WETH)",
        alias="FLASH_LOAN_ASSET"
    )

    flash_loan_amount_eth: float = Field(
        default=100.0,
        description="Flash-borrowed amount in ETH",
        alias="FLASH_LOAN_AMOUNT_ETH"
    )

    strategy_path: List[int] = Field(
        default_factory=lambda: [0, 1, 2, 50, 100],
        description="Strategy path IDs passed to the execution contract",
        alias="STRATEGY_PATH"
    )

    gas_limit: int = Field(
        default=500_000,
        description="Gas limit of the strategy call (worst-case budget)",
        alias="GAS_LIMIT"
    )

    fallback_max_fee_gwei: float = Field(
        default=50.0,
        description="Max fee used when the fee oracle is unavailable",
        alias="FALLBACK_MAX_FEE_GWEI"
    )

    fallback_priority_fee_gwei: float = Field(
        default=2.0,
        description="Priority fee used when the fee oracle is unavailable",
        alias="FALLBACK_PRIORITY_FEE_GWEI"
    )

    # Trading settings
    min_profit_usd: float = Field(
        default=50.0,
        description="Minimum net profit threshold in USD",
        alias="MIN_PROFIT_USD"
    )

    eth_price_usd: float = Field(
        default=3450.0,
        description="Static ETH price reference for threshold conversion",
        alias="ETH_PRICE_USD"
    )

    yield_rate: float = Field(
        default=0.003,
        description="Assumed gross yield as a fraction of trade size",
        alias="YIELD_RATE"
    )

    min_notional_eth: float = Field(
        default=0.5,
        description="Minimum attached value for a transaction to be considered",
        alias="MIN_NOTIONAL_ETH"
    )

    trade_selectors: List[str] = Field(
        default_factory=list,
        description="Recognized trade-call selectors (built-in table if empty)",
        alias="TRADE_SELECTORS"
    )

    # Pipeline settings
    worker_count: int = Field(
        default=32,
        description="Number of concurrent pipeline workers",
        alias="WORKER_COUNT"
    )

    queue_size: int = Field(
        default=10_000,
        description="Maximum pending hashes buffered between intake and workers",
        alias="QUEUE_SIZE"
    )

    pending_poll_interval_seconds: float = Field(
        default=0.2,
        description="Polling interval of the pending transaction filter",
        alias="PENDING_POLL_INTERVAL_SECONDS"
    )

    block_interval_seconds: float = Field(
        default=12.0,
        description="Expected block interval",
        alias="BLOCK_INTERVAL_SECONDS"
    )

    inclusion_grace_seconds: float = Field(
        default=2.0,
        description="Extra wait past one block interval before giving up on inclusion",
        alias="INCLUSION_GRACE_SECONDS"
    )

    status_log_interval_seconds: float = Field(
        default=60.0,
        description="Interval of the periodic status log line",
        alias="STATUS_LOG_INTERVAL_SECONDS"
    )

    low_balance_warning_eth: float = Field(
        default=0.5,
        description="Warn at startup when the wallet holds less than this",
        alias="LOW_BALANCE_WARNING_ETH"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore"  # Ignore extra fields from .env
    }


# Global settings instance
settings = Settings()
