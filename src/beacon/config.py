"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with BEACON_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via BEACON_* env vars."""

    # Database: a local SQLite file is the single durable store
    database_url: str = "sqlite+aiosqlite:///./beacon.db"
    auto_create_schema: bool = True

    # Timeouts (seconds)
    store_timeout_seconds: float = 5.0
    push_timeout_seconds: float = 2.0

    # Pagination defaults, used whenever page/limit are absent or invalid;
    # larger limits are capped at max_page_limit
    default_page: int = 1
    default_page_limit: int = 20
    max_page_limit: int = 100

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "BEACON_"}

    @model_validator(mode="after")
    def validate_limits(self):
        """Timeouts and pagination defaults must be positive."""
        if self.store_timeout_seconds <= 0 or self.push_timeout_seconds <= 0:
            raise ValueError("BEACON_*_TIMEOUT_SECONDS must be positive")
        if self.default_page < 1 or self.default_page_limit < 1:
            raise ValueError(
                "BEACON_DEFAULT_PAGE and BEACON_DEFAULT_PAGE_LIMIT must be >= 1"
            )
        if self.default_page_limit > self.max_page_limit:
            raise ValueError(
                "BEACON_DEFAULT_PAGE_LIMIT must not exceed BEACON_MAX_PAGE_LIMIT"
            )
        return self


# Singleton — import this everywhere
settings = Settings()
