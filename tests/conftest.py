"""Shared pytest fixtures for service, storage and API tests.

The API fixtures run the real application against the in-memory store and
injected doubles, so no database or Redis server is required.
"""

import logging
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from shortlink.cache import MappingCache
from shortlink.config import Settings
from shortlink.context import AppContext
from shortlink.main import create_app
from shortlink.service import ShortLinkService
from shortlink.storage.memory import InMemoryMappingStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=None,
        REDIS_ADDR=None,
        METRICS_ENABLED=False,
        BACKEND_CONNECT_TIMEOUT_SECONDS=0.5,
    )


@pytest.fixture
def memory_store() -> InMemoryMappingStore:
    return InMemoryMappingStore()


@pytest.fixture
def mock_redis() -> AsyncMock:
    """In-memory stand-in for an async Redis client."""
    data: dict[str, str] = {}
    client = AsyncMock(spec=redis.Redis)

    async def _get(key):
        return data.get(key)

    async def _set(key, value):
        data[key] = value
        return True

    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock(return_value=None)
    client.data = data
    return client


@pytest.fixture
def failing_redis() -> AsyncMock:
    """Async Redis client whose every call fails."""
    client = AsyncMock(spec=redis.Redis)
    client.get = AsyncMock(side_effect=RedisConnectionError("cache down"))
    client.set = AsyncMock(side_effect=RedisConnectionError("cache down"))
    client.ping = AsyncMock(side_effect=RedisConnectionError("cache down"))
    client.aclose = AsyncMock(return_value=None)
    return client


@pytest.fixture
def cache(mock_redis: AsyncMock) -> MappingCache:
    return MappingCache(mock_redis, key_prefix="short", timeout=0.25)


@pytest.fixture
def failing_cache(failing_redis: AsyncMock) -> MappingCache:
    return MappingCache(failing_redis, key_prefix="short", timeout=0.25)


def make_context(
    settings: Settings,
    store,
    cache: MappingCache | None = None,
    service: ShortLinkService | None = None,
) -> AppContext:
    service = service or ShortLinkService(store=store, cache=cache)
    return AppContext(
        settings=settings,
        store=store,
        service=service,
        logger=logging.getLogger("shortlink"),
        cache=cache,
    )


@pytest.fixture
def app_context(settings: Settings, memory_store: InMemoryMappingStore, cache: MappingCache) -> AppContext:
    return make_context(settings, memory_store, cache)


@pytest_asyncio.fixture
async def client(settings: Settings, app_context: AppContext) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings=settings, context=app_context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://shortenurl.org") as ac:
        yield ac


@pytest.fixture
def context_factory(settings: Settings):
    """Build an AppContext around arbitrary store/cache/service doubles."""

    def _factory(store, cache=None, service=None) -> AppContext:
        return make_context(settings, store, cache, service)

    return _factory


@pytest.fixture
def client_factory(settings: Settings):
    """Open an API client over a given AppContext."""

    def _factory(app_context: AppContext, host: str = "shortenurl.org") -> AsyncClient:
        app = create_app(settings=settings, context=app_context)
        return AsyncClient(transport=ASGITransport(app=app), base_url=f"http://{host}")

    return _factory
