"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # DataForSEO
    DATAFORSEO_LOGIN: str = ""
    DATAFORSEO_PASSWORD: str = ""

    # Provider behavior
    PROVIDER_TIMEOUT: float = 30.0
    PROVIDER_MAX_RETRIES: int = 2
    PROVIDER_MAX_CONNECTIONS: int = 20

    # Region used when a request omits one
    DEFAULT_REGION: str = "us"

    # Oldest stale entry the fallback may serve (None = no ceiling)
    MAX_STALE_AGE_HOURS: Optional[float] = None

    # Application Settings
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def has_provider_credentials(self) -> bool:
        return bool(self.DATAFORSEO_LOGIN and self.DATAFORSEO_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
