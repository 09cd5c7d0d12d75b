from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., ADMIN_SECRET, CMC_API_KEY, PORT, SWAP_RPC_URL, RATES_CACHE_TTL_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Price Proxy"
    debug: bool = False
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 3001

    # Price document persistence
    data_dir: Path = Path("data")
    prices_filename: str = "prices.json"
    prices_path: Optional[Path] = None  # derived if not provided
    default_prices_file: Optional[Path] = None  # JSON fiat price spec; packaged defaults otherwise

    # Reference token quote / caching
    # Allowed: 'coinmarketcap' (live quotes, needs cmc_api_key), 'static' (seed rate forever)
    rate_provider: str = "coinmarketcap"
    rate_symbol: str = "POL"
    cmc_api_key: Optional[str] = None
    cmc_base_url: str = "https://pro-api.coinmarketcap.com"
    rates_cache_ttl_seconds: int = 1800  # 30 minutes
    seed_rate: Decimal = Decimal("0.45")
    nova_price_usd: Decimal = Decimal("0.00007")
    http_timeout_seconds: float = 5.0
    http_retries: int = 1
    refresh_rate_on_update: bool = True

    # Admin gate
    admin_secret: Optional[str] = None
    admin_header_name: str = "X-Admin-Secret"

    cors_origins: List[str] = ["*"]

    # Swap quote relay (Uniswap V3 QuoterV2 on Polygon)
    swap_rpc_url: Optional[str] = None
    swap_quoter_address: str = "0x61fFE014bA17989E743c5F6cB21bF9697530B21e"
    swap_default_fee: int = 3000

    @field_validator("seed_rate", "nova_price_usd")
    @classmethod
    def positive_rate(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v <= 0:
            raise ValueError("rate must be a positive finite number")
        return v

    @field_validator("rates_cache_ttl_seconds")
    @classmethod
    def positive_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("rates_cache_ttl_seconds must be positive")
        return v

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.prices_path is None:
            self.prices_path = self.data_dir / self.prices_filename
        # Ensure persistence directory exists
        self.prices_path.parent.mkdir(parents=True, exist_ok=True)
        # Normalize / validate provider
        allowed = {"coinmarketcap", "static"}
        if self.rate_provider not in allowed:
            raise ValueError(
                f"Unsupported rate_provider '{self.rate_provider}'. Allowed: {allowed}"
            )
        self.rate_symbol = self.rate_symbol.upper()


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
