"""Configuration management for the shortlinks service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram - get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 - Import**::
    from shortlinks.config import get_settings

**Step 2 - Get settings**::
    settings = get_settings()
    backend = settings.STORAGE_BACKEND

**Step 3 - Build short URLs**::
    short_url = f"{settings.redirect_base_url}{alias}"

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (or a local .env file) override defaults.
- API_KEY must match the X-API-KEY header sent to POST /links.
- REDIRECT_BASE_URL falls back to BASE_URL + "/r/" when left empty.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from shortlinks.enums import StorageBackend


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    REDIRECT_BASE_URL: str = ""
    LOG_LEVEL: str = "INFO"

    # Shared secret for link creation
    API_KEY: str = "dev-key-123"

    # Storage
    STORAGE_BACKEND: StorageBackend = StorageBackend.DATABASE
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"

    # Redis lookup cache
    CACHE_ENABLED: bool = True
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_TTL_SECONDS: int = 3600

    # Alias generation and link lifetime
    ALIAS_LENGTH: int = 10
    ALIAS_GENERATION_ATTEMPTS: int = 5
    DEFAULT_TTL_DAYS: int = 365

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def redirect_base_url(self) -> str:
        if self.REDIRECT_BASE_URL:
            return self.REDIRECT_BASE_URL
        return f"{self.BASE_URL.rstrip('/')}/r/"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
