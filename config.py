"""
Application configuration using Pydantic Settings.
"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Document store
    DATABASE_URL: str = ""
    DATABASE_NAME: str = ""

    # Tenant scope for every document path
    APP_ID: str = "default-app-id"

    # Pre-issued session token; anonymous sign-in when empty
    INITIAL_AUTH_TOKEN: Optional[str] = None
    AUTH_TIMEOUT_SECONDS: float = 10.0

    # Simulated object-storage detail fetch
    DETAIL_FETCH_DELAY_MS: int = 800

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()


def validate_settings(config: Optional[Settings] = None) -> Settings:
    """Fail fast when required store settings are absent."""
    config = config or settings
    missing = [
        name
        for name in ("DATABASE_URL", "DATABASE_NAME")
        if not (getattr(config, name) or "").strip()
    ]
    if missing:
        raise ValueError(f"Missing required configuration: {', '.join(missing)}")
    if config.AUTH_TIMEOUT_SECONDS <= 0:
        raise ValueError("AUTH_TIMEOUT_SECONDS must be positive")
    if config.DETAIL_FETCH_DELAY_MS < 0:
        raise ValueError("DETAIL_FETCH_DELAY_MS must not be negative")
    return config
