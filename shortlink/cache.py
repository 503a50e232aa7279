"""Redis read-through cache for short code lookups.

The cache holds a disposable duplicate of each mapping's
``(domain, code) -> original_url`` projection. It is never authoritative:
the store owns the canonical copy, so entries may vanish at any time.

Flow Diagram — Cache Operations
===============================
::
    ┌─────────────┐
    │ get / set   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Redis call  │
    │ (wait_for   │
    │  timeout)   │
    └──────┬──────┘
    OK?    │
    ┌──────┴─────┐
    │ NO          │ YES
    ▼             ▼
┌──────────┐  ┌─────────┐
│ log      │  │ return  │
│ degraded │  │ value   │
│ -> None  │  └─────────┘
└──────────┘

How to Use
===========
**Step 1 — Connect at startup**::
    cache = await connect_cache(settings)   # None when disabled or unreachable

**Step 2 — Read and write**::
    url = await cache.get("shortenurl.org", "a1B2c3D4e")   # None on miss or error
    await cache.set("shortenurl.org", "a1B2c3D4e", "https://example.com")

**Step 3 — Cleanup on shutdown**::
    await cache.close()

Key Behaviours
===============
- Keys are ``{prefix}:{domain}:{code}``; the default prefix is ``short``.
- Entries are written without expiry because mappings never change.
- Every call is bounded by a small timeout; a slow cache behaves like a miss.
- Failures are logged and absorbed; nothing raised here reaches the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from shortlink.config import Settings
from shortlink.exceptions import CacheDegradedError

__all__ = ["MappingCache", "connect_cache"]

logger = logging.getLogger("shortlink.cache")

T = TypeVar("T")

DEFAULT_REDIS_PORT = 6379


class MappingCache:
    """Best-effort cache of mappings in Redis.

    Args:
        client: Async Redis client.
        key_prefix: Namespace prefix for all keys.
        timeout: Upper bound in seconds for each Redis call.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = "short", timeout: float = 0.25) -> None:
        self._client = client
        self._key_prefix = key_prefix
        self._timeout = timeout

    @property
    def client(self) -> redis.Redis:
        return self._client

    def key(self, domain: str, code: str) -> str:
        return f"{self._key_prefix}:{domain}:{code}"

    async def get(self, domain: str, code: str) -> str | None:
        """Return the cached URL, or None on a miss or any cache failure."""
        key = self.key(domain, code)
        try:
            value = await self._call(self._client.get, key)
        except CacheDegradedError as exc:
            logger.warning(f"Cache GET degraded for {key}: {exc}")
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, domain: str, code: str, original_url: str) -> None:
        """Store a mapping with no expiry. Failures are logged and discarded."""
        key = self.key(domain, code)
        try:
            await self._call(self._client.set, key, original_url)
        except CacheDegradedError as exc:
            logger.warning(f"Cache SET degraded for {key}: {exc}")

    async def ping(self) -> bool:
        try:
            return bool(await self._call(self._client.ping))
        except CacheDegradedError:
            return False

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            return await asyncio.wait_for(method(*args), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise CacheDegradedError(f"timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise CacheDegradedError(str(exc) or exc.__class__.__name__) from exc


def _create_client(settings: Settings) -> redis.Redis:
    addr = settings.REDIS_ADDR or ""
    if "://" in addr:
        return redis.from_url(
            addr,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.BACKEND_CONNECT_TIMEOUT_SECONDS,
        )

    host, _, port = addr.rpartition(":")
    if not host:
        host, port = addr, ""
    return redis.Redis(
        host=host,
        port=int(port) if port else DEFAULT_REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        db=settings.REDIS_DB,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.BACKEND_CONNECT_TIMEOUT_SECONDS,
    )


async def connect_cache(settings: Settings) -> MappingCache | None:
    """Connect to the configured cache, or return None to run without one.

    A missing REDIS_ADDR, a bad address, or a failed or slow startup PING
    all disable caching instead of failing startup.
    """
    if not settings.REDIS_ADDR:
        logger.info("No cache configured; caching disabled")
        return None

    try:
        client = _create_client(settings)
    except ValueError as exc:
        logger.warning(f"Invalid cache address {settings.REDIS_ADDR!r}, proceeding without cache: {exc}")
        return None

    try:
        await asyncio.wait_for(client.ping(), timeout=settings.BACKEND_CONNECT_TIMEOUT_SECONDS)
    except Exception as exc:
        logger.warning(f"Cache connection failed, proceeding without cache: {exc!r}")
        await client.aclose()
        return None

    logger.info(f"Connected to cache at {settings.REDIS_ADDR}")
    return MappingCache(
        client,
        key_prefix=settings.REDIS_KEY_PREFIX,
        timeout=settings.CACHE_TIMEOUT_SECONDS,
    )
