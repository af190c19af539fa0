"""
Authentication Configuration

Settings for bearer-token (JWT) validation and auth behavior.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    # JWT Settings
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Auth behavior
    auth_enabled: bool = True  # Set to False for local dev without auth

    class Config:
        env_prefix = ""
        env_file = ".env"
        extra = "ignore"

    @property
    def is_configured(self) -> bool:
        """Check if auth is properly configured."""
        return bool(self.jwt_secret)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    return AuthConfig()
