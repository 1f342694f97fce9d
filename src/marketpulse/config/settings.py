"""Application settings and configuration management using Pydantic."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    # Environment and deployment
    environment: str = "development"

    # Quote endpoint settings
    quote_providers: List[str] = ["yahoo", "finnhub", "stooq"]
    proxy_quote_url: str = "http://localhost:3000/api/multi-quote"
    finnhub_api_key: Optional[str] = None
    alpha_vantage_api_key: Optional[str] = None
    twelve_data_api_key: Optional[str] = None
    fmp_api_key: Optional[str] = None

    # News settings
    news_endpoint_url: str = "https://query2.finance.yahoo.com/v2/finance/news"
    news_item_limit: int = 5

    # Network and cache settings
    request_timeout_seconds: float = 10.0
    quote_cache_ttl_seconds: float = 30.0

    # Polling settings
    price_poll_seconds: int = 15
    alert_poll_seconds: int = 30
    macro_poll_seconds: int = 30
    recommendation_poll_seconds: int = 60
    sentiment_poll_seconds: int = 60

    # Storage settings
    data_directory: str = "data"
    local_store_file: str = "local_store.json"
    database_url: Optional[str] = None
    database_echo_sql: bool = False

    # Allocation limits (percent of portfolio value)
    max_stock_allocation: float = 5.0
    max_sector_allocation: float = 20.0

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "structured"  # 'structured' or 'plain'
    log_file_enabled: bool = False
    log_file_path: str = "data/marketpulse.log"
    log_max_file_size: str = "10MB"
    log_backup_count: int = 5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        valid_environments = ["development", "testing", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("quote_providers")
    @classmethod
    def validate_quote_providers(cls, v):
        """Validate that at least one known quote provider is configured."""
        from ..quotes.providers import PROVIDERS

        providers = [name.strip().lower() for name in v if name.strip()]
        if not providers:
            raise ValueError("At least one quote provider is required")
        unknown = [name for name in providers if name not in PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown quote providers: {unknown}")
        return providers

    @field_validator(
        "price_poll_seconds",
        "alert_poll_seconds",
        "macro_poll_seconds",
        "recommendation_poll_seconds",
        "sentiment_poll_seconds",
    )
    @classmethod
    def validate_interval(cls, v):
        """Validate polling interval is reasonable."""
        if v < 1 or v > 3600:  # 1 second to 1 hour
            raise ValueError("Polling interval must be between 1 and 3600 seconds")
        return v

    @field_validator("request_timeout_seconds", "quote_cache_ttl_seconds")
    @classmethod
    def validate_positive_duration(cls, v):
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Duration must be positive")
        return v

    @field_validator("news_item_limit")
    @classmethod
    def validate_news_limit(cls, v):
        """Validate news item limit."""
        if v < 1 or v > 50:
            raise ValueError("News item limit must be between 1 and 50")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        valid_formats = ["structured", "plain"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    def get_database_url(self) -> str:
        """Get the complete database URL for the remote backend."""
        if self.database_url:
            return self.database_url

        # Default to SQLite in data directory
        db_dir = Path(self.data_directory)
        db_dir.mkdir(parents=True, exist_ok=True)
        db_path = db_dir / "marketpulse.db"
        return f"sqlite:///{db_path}"

    def get_local_store_path(self) -> Path:
        """Get the path of the durable local store file."""
        return Path(self.data_directory) / self.local_store_file

    def get_api_keys(self) -> dict:
        """Map provider names to their configured API keys."""
        return {
            "finnhub": self.finnhub_api_key,
            "alphavantage": self.alpha_vantage_api_key,
            "twelvedata": self.twelve_data_api_key,
            "fmp": self.fmp_api_key,
        }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
