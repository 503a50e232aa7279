"""Configuration management for the shortlink service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
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
**Step 1 — Import**::
    from shortlink.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    if settings.DATABASE_URL is None:
        ...  # in-memory fallback store

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- Only PORT is always set; it defaults to 8080.
- An unset DATABASE_URL selects the in-memory fallback store.
- An unset REDIS_ADDR disables caching. Both degradations are independent.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Durable store, e.g. postgresql+asyncpg://user:pass@db:5432/shortlink
    DATABASE_URL: str | None = None

    # Cache
    REDIS_ADDR: str | None = None
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    REDIS_KEY_PREFIX: str = "short"

    # Short code allocation
    ALLOCATION_MAX_ATTEMPTS: int = Field(default=5, ge=1)
    ENTROPY_FALLBACK: bool = False

    # Timeouts
    BACKEND_CONNECT_TIMEOUT_SECONDS: float = Field(default=2.0, gt=0)
    CACHE_TIMEOUT_SECONDS: float = Field(default=0.25, gt=0)

    METRICS_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
