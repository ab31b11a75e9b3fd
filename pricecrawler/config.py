"""Application configuration via Pydantic Settings."""

from typing import Dict, List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables.

    Everything here is read once at process start and never mutated
    while the aggregator is running.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    FRONTEND_URL: str = "http://localhost:8000"

    # Aggregation
    ENABLED_SOURCES: str = ""  # Comma-separated slugs, empty means every registered source
    SOURCE_TIMEOUT_SECONDS: float = 8.0
    BROWSER_TIMEOUT_SECONDS: float = 10.0
    SOURCE_TIMEOUT_OVERRIDES: Dict[str, float] = {}
    QUERY_DEADLINE_SECONDS: float = 15.0
    MAX_RESULTS_PER_SOURCE: int = 3
    INTER_QUERY_DELAY_SECONDS: float = 1.0

    # Result cache
    CACHE_BACKEND: str = "memory"  # 'memory' or 'redis'
    REDIS_URL: str = "redis://localhost:6379/0"

    # Walmart Open API
    WALMART_API_URL: str = "https://api.walmartlabs.com/v1/search"
    WALMART_API_KEY: str = ""

    # Target RedSky
    TARGET_API_URL: str = (
        "https://redsky.target.com/redsky_aggregations/v1/web/plp_search_v1"
    )
    TARGET_API_KEY: str = ""

    # Amazon via Rainforest API
    RAINFOREST_API_URL: str = "https://api.rainforestapi.com/request"
    RAINFOREST_API_KEY: str = ""
    RAINFOREST_AMAZON_DOMAIN: str = "amazon.com"

    # Kroger (OAuth 2.0 client credentials)
    KROGER_API_URL: str = "https://api.kroger.com/v1/products"
    KROGER_OAUTH_URL: str = "https://api.kroger.com/v1/connect/oauth2/token"
    KROGER_CLIENT_ID: str = ""
    KROGER_CLIENT_SECRET: str = ""

    # Best Buy
    BESTBUY_API_URL: str = "https://api.bestbuy.com/v1/products"
    BESTBUY_API_KEY: str = ""

    # Browser scraping
    BROWSER_HEADLESS: bool = True

    @model_validator(mode="after")
    def check_timeouts(self) -> "Settings":
        """Reject timeouts that would make the query deadline meaningless."""
        if self.QUERY_DEADLINE_SECONDS <= 0:
            raise ValueError("QUERY_DEADLINE_SECONDS must be positive")
        if self.SOURCE_TIMEOUT_SECONDS <= 0 or self.BROWSER_TIMEOUT_SECONDS <= 0:
            raise ValueError("source timeouts must be positive")
        if self.MAX_RESULTS_PER_SOURCE < 1:
            raise ValueError("MAX_RESULTS_PER_SOURCE must be at least 1")
        return self

    def get_enabled_sources(self) -> List[str]:
        """Parse ENABLED_SOURCES into a list of source slugs.

        Returns:
            List of slugs in configured order, empty if ENABLED_SOURCES is not set
        """
        if not self.ENABLED_SOURCES:
            return []
        return [s.strip().lower() for s in self.ENABLED_SOURCES.split(",") if s.strip()]

    def timeout_for(self, slug: str, default: float) -> float:
        """Per-source timeout, falling back to the adapter kind's default."""
        return self.SOURCE_TIMEOUT_OVERRIDES.get(slug, default)


settings = Settings()
