"""Application context built once at startup and injected into request handlers.

The context replaces process-wide connection globals: it owns the store, the
optional cache and the service, so tests can build one around test doubles.

Startup Diagram
===============
::
    ┌───────────────┐
    │ build_context │
    └───────┬───────┘
            ├──────────────────────────┐
            ▼                          ▼
    ┌───────────────┐          ┌───────────────┐
    │ connect_store │          │ connect_cache │
    └───────┬───────┘          └───────┬───────┘
  OK ┌──────┴──────┐ FAIL    OK ┌──────┴──────┐ FAIL
     ▼             ▼            ▼             ▼
 ┌────────┐  ┌──────────┐  ┌─────────┐  ┌──────────┐
 │SQL     │  │ in-memory│  │ Mapping │  │ no cache │
 │store   │  │ fallback │  │ Cache   │  │ (None)   │
 └────────┘  └──────────┘  └─────────┘  └──────────┘

Key Behaviours
===============
- Connecting is bounded by BACKEND_CONNECT_TIMEOUT_SECONDS.
- A timeout or connection failure degrades the backend instead of crashing.
- Store and cache degrade independently.
"""

import asyncio
import logging
from dataclasses import dataclass

from shortlink.cache import MappingCache, connect_cache
from shortlink.codegen import CodeGenerator
from shortlink.config import Settings
from shortlink.database import create_engine_from_settings, create_session_factory, init_schema
from shortlink.service import ShortLinkService
from shortlink.storage.base import MappingStore
from shortlink.storage.memory import InMemoryMappingStore
from shortlink.storage.sql import SQLMappingStore

__all__ = ["AppContext", "build_context", "connect_store", "setup_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings) -> logging.Logger:
    """Setup the shortlink logger once."""
    logger = logging.getLogger("shortlink")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL.upper())
    return logger


async def connect_store(settings: Settings) -> MappingStore:
    logger = logging.getLogger("shortlink.context")
    if not settings.DATABASE_URL:
        logger.info("No durable store configured; using in-memory storage (no persistence)")
        return InMemoryMappingStore()

    try:
        engine = create_engine_from_settings(settings)
    except Exception as exc:
        logger.warning(f"Invalid DATABASE_URL, using in-memory storage: {exc}")
        return InMemoryMappingStore()

    try:
        await asyncio.wait_for(init_schema(engine), timeout=settings.BACKEND_CONNECT_TIMEOUT_SECONDS)
    except Exception as exc:
        logger.warning(f"Durable store unreachable, using in-memory storage: {exc!r}")
        await engine.dispose()
        return InMemoryMappingStore()

    logger.info("Connected to durable store; verified that 'shortened_urls' exists")
    return SQLMappingStore(create_session_factory(engine), engine=engine)


@dataclass
class AppContext:
    """Shared resources for the lifetime of the application."""

    settings: Settings
    store: MappingStore
    service: ShortLinkService
    logger: logging.Logger
    cache: MappingCache | None = None

    async def close(self) -> None:
        if self.cache is not None:
            await self.cache.close()
        await self.store.close()


async def build_context(settings: Settings) -> AppContext:
    logger = setup_logging(settings)
    store, cache = await asyncio.gather(connect_store(settings), connect_cache(settings))
    generator = CodeGenerator(allow_clock_fallback=settings.ENTROPY_FALLBACK)
    service = ShortLinkService(
        store=store,
        cache=cache,
        generator=generator,
        max_attempts=settings.ALLOCATION_MAX_ATTEMPTS,
        logger=logging.getLogger("shortlink.service"),
    )
    logger.info(
        f"[{settings.APP_ENV}] store backend: {store.backend.value}; "
        f"cache: {'enabled' if cache is not None else 'disabled'}"
    )
    return AppContext(settings=settings, store=store, service=service, logger=logger, cache=cache)
