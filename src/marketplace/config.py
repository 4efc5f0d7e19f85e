"""
Marketplace - Configuration and settings.

Loaded from the environment / .env via pydantic-settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    marketplace_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Backend API (identity, submission, uploads)
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_seconds: float = 30.0

    # Onboarding state storage
    onboarding_store: Literal["file", "memory", "supabase"] = "file"
    onboarding_state_dir: Path = Path("onboarding_state")

    # Supabase (only needed for onboarding_store=supabase)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    # Web
    cors_origins: list[str] = [
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ]

    @property
    def is_development(self) -> bool:
        return self.marketplace_env == "development"

    @property
    def is_production(self) -> bool:
        return self.marketplace_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
