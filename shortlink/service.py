"""Short link service layer: allocation and lookup core.

This module orchestrates the code generator, the mapping store and the
optional cache. It is the only place that decides when to retry, when to fall
back to the store, and which failures reach the caller.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────┐
    │                    ShortLinkService                     │
    │  ┌───────────────┐  ┌───────────────┐  ┌─────────────┐  │
    │  │ CodeGenerator │  │ MappingStore  │  │MappingCache │  │
    │  │ (CSPRNG)      │  │ (SQL / memory)│  │ (optional)  │  │
    │  └───────────────┘  └───────────────┘  └─────────────┘  │
    └─────────────────────────────────────────────────────────┘

Allocation Flow
---------------
::
    ┌─────────────┐
    │ allocate()  │
    └──────┬──────┘
           ▼
    ┌─────────────┐◄──────────────┐
    │ generate    │               │
    │ candidate   │               │ CollisionError
    └──────┬──────┘               │ (attempts left)
           ▼                      │
    ┌─────────────┐               │
    │ insert_     ├───────────────┘
    │ unique()    │
    └──────┬──────┘
    OK     │        StoreUnavailableError -> propagate, no retry
           ▼
    ┌─────────────┐
    │ cache.set() │  best-effort, never fails the call
    └──────┬──────┘
           ▼
       return code

Lookup Flow
-----------
::
    ┌─────────────┐
    │ resolve()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐  HIT
    │ cache.get() ├──────► return url
    └──────┬──────┘
   MISS / ERROR
           ▼
    ┌─────────────┐
    │ store.get() │  NotFoundError / StoreUnavailableError -> propagate
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ cache.set() │  best-effort repopulate
    └──────┬──────┘
           ▼
       return url

Consistency
===========
Mappings are immutable once created, so write-through on creation plus
fill-on-miss is sufficient: a cached value can never be stale relative to the
store, and no invalidation is needed.
"""

import logging
import time
from dataclasses import dataclass

from prometheus_client import Counter, Histogram

from shortlink.cache import MappingCache
from shortlink.codegen import CodeGenerator, is_valid_code
from shortlink.enums import CacheStatus, RequestStatus
from shortlink.exceptions import (
    CollisionError,
    ExhaustedRetriesError,
    InvalidInputError,
    NotFoundError,
    ShortlinkError,
)
from shortlink.storage.base import MappingStore
from shortlink.validation import normalize_domain, require_url

__all__ = ["ShortLinkService", "DEFAULT_MAX_ATTEMPTS"]

DEFAULT_MAX_ATTEMPTS = 5


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

ALLOCATIONS_TOTAL = Counter(
    "shortlink_allocations_total",
    "Total short code allocation requests",
    ["status"],
)
ALLOCATION_COLLISIONS_TOTAL = Counter(
    "shortlink_allocation_collisions_total",
    "Candidate codes rejected because they were already taken",
)
ALLOCATION_DURATION = Histogram(
    "shortlink_allocation_duration_seconds",
    "Time taken to allocate short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
LOOKUPS_TOTAL = Counter(
    "shortlink_lookups_total",
    "Total short code lookups",
    ["status", "cache"],
)
LOOKUP_DURATION = Histogram(
    "shortlink_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class ServiceStats:
    """In-process counters for one service instance."""

    allocations: int = 0
    collisions: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    store_reads: int = 0


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class ShortLinkService:
    """Allocation and lookup core.

    The service depends only on the ``MappingStore`` interface; it never
    knows whether the durable store or the in-memory fallback is active.

    Example:
        >>> service = ShortLinkService(store=InMemoryMappingStore())
        >>> code = await service.allocate("shortenurl.org", "https://www.google.com")
        >>> await service.resolve("shortenurl.org", code)
        'https://www.google.com'
    """

    def __init__(
        self,
        store: MappingStore,
        cache: MappingCache | None = None,
        generator: CodeGenerator | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1 (given value: {max_attempts}).")
        self._store = store
        self._cache = cache
        self._generator = generator or CodeGenerator()
        self._max_attempts = max_attempts
        self._logger = logger or logging.getLogger("shortlink.service")
        self.stats = ServiceStats()

    @property
    def store(self) -> MappingStore:
        return self._store

    @property
    def cache(self) -> MappingCache | None:
        return self._cache

    @property
    def generator(self) -> CodeGenerator:
        return self._generator

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def allocate(self, domain: str, original_url: str) -> str:
        """Allocate a new code for ``original_url`` under ``domain``.

        Every call creates a new mapping; the same URL allocated twice gets
        two different codes.

        Raises:
            InvalidInputError: If domain or url is missing or empty.
            ExhaustedRetriesError: If every attempt collided.
            StoreUnavailableError: On any non-collision store failure.
            EntropyUnavailableError: If no secure random code could be drawn.
        """
        start_time = time.perf_counter()
        try:
            domain = normalize_domain(domain)
            original_url = require_url(original_url)
            code = await self._insert_with_retries(domain, original_url)
        except InvalidInputError:
            ALLOCATIONS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise
        except ExhaustedRetriesError as exc:
            ALLOCATIONS_TOTAL.labels(status=RequestStatus.EXHAUSTED).inc()
            self._logger.error(f"Allocation exhausted retries, check entropy source and code space: {exc}")
            raise
        except ShortlinkError as exc:
            ALLOCATIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Allocation failed for domain {domain}: {exc}")
            raise
        finally:
            ALLOCATION_DURATION.observe(time.perf_counter() - start_time)

        ALLOCATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self.stats.allocations += 1

        # Store is authoritative; the cache write cannot fail or undo the allocation.
        if self._cache is not None:
            await self._cache.set(domain, code, original_url)

        self._logger.info(f"Allocated {domain}/{code}")
        return code

    async def resolve(self, domain: str, code: str) -> str:
        """Return the original URL mapped to ``(domain, code)``.

        Codes that do not match the generator's shape are rejected before
        the cache or store is touched.

        Raises:
            InvalidInputError: If the domain is empty.
            NotFoundError: If the code is malformed or has no mapping.
            StoreUnavailableError: On a store failure other than absence.
        """
        start_time = time.perf_counter()
        cache_status = CacheStatus.DISABLED if self._cache is None else CacheStatus.MISS
        try:
            domain = normalize_domain(domain)
            if not is_valid_code(code, self._generator.length, self._generator.alphabet):
                raise NotFoundError(f"{domain}/{code}")

            if self._cache is not None:
                cached = await self._cache.get(domain, code)
                if cached is not None:
                    cache_status = CacheStatus.HIT
                    self.stats.cache_hits += 1
                    self._logger.debug(f"Cache hit for {domain}/{code}")
                    LOOKUPS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
                    return cached
                self.stats.cache_misses += 1

            self.stats.store_reads += 1
            original_url = await self._store.get(domain, code)
        except InvalidInputError:
            LOOKUPS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR, cache=cache_status).inc()
            raise
        except NotFoundError:
            LOOKUPS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache=cache_status).inc()
            raise
        except ShortlinkError as exc:
            LOOKUPS_TOTAL.labels(status=RequestStatus.ERROR, cache=cache_status).inc()
            self._logger.error(f"Lookup failed for {domain}/{code}: {exc}")
            raise
        finally:
            LOOKUP_DURATION.observe(time.perf_counter() - start_time)

        if self._cache is not None:
            await self._cache.set(domain, code, original_url)

        LOOKUPS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
        return original_url

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _insert_with_retries(self, domain: str, original_url: str) -> str:
        for attempt in range(1, self._max_attempts + 1):
            code = self._generator.generate()
            try:
                await self._store.insert_unique(domain, code, original_url)
            except CollisionError:
                ALLOCATION_COLLISIONS_TOTAL.inc()
                self.stats.collisions += 1
                self._logger.debug(
                    f"Collision on {domain}/{code} (attempt {attempt}/{self._max_attempts})"
                )
                continue
            return code

        raise ExhaustedRetriesError(domain, self._max_attempts)
