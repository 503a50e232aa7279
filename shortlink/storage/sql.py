"""SQL-backed durable mapping store.

This module provides the production store. It persists mappings in the
``shortened_urls`` table through SQLAlchemy's async ORM and relies on the
table's ``UNIQUE (domain, code)`` constraint as the only serialization point
between concurrent writers.

Flow Diagram — insert_unique()
==============================
::
    ┌─────────────┐
    │ INSERT row  │
    │ + COMMIT    │
    └──────┬──────┘
     OK?   │
    ┌──────┴───────────────┐
    │ YES      │ Integrity │ other error
    ▼          ▼           ▼
 ┌──────┐ ┌───────────┐ ┌────────────────┐
 │return│ │ unique    │ │StoreUnavailable│
 └──────┘ │ violation?│ └────────────────┘
          └─────┬─────┘
        YES ┌───┴───┐ NO
            ▼       ▼
   ┌──────────────┐ ┌────────────────┐
   │CollisionError│ │StoreUnavailable│
   └──────────────┘ └────────────────┘

Key Behaviours
===============
- Unique violations are recognised by driver code: PostgreSQL SQLSTATE 23505,
  MySQL errno 1062 and SQLite's "UNIQUE constraint failed" message.
- Any other integrity failure (NOT NULL, data too long, ...) is a store error,
  not a collision, so allocation does not burn retries on it.
- Each call uses its own short session; a failed transaction is rolled back
  when the session closes.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortlink.enums import StoreBackend
from shortlink.exceptions import CollisionError, NotFoundError, StoreUnavailableError
from shortlink.models import ShortenedURL
from shortlink.storage.base import MappingStore

__all__ = ["SQLMappingStore", "is_unique_violation"]

PG_UNIQUE_VIOLATION = "23505"
MYSQL_DUPLICATE_ENTRY = 1062

P = ParamSpec("P")
R = TypeVar("R")


def is_unique_violation(exc: IntegrityError) -> bool:
    """Return True if ``exc`` was caused by a duplicate key on a unique index."""
    candidates = [exc.orig, getattr(exc.orig, "__cause__", None)]
    for orig in candidates:
        if orig is None:
            continue
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate == PG_UNIQUE_VIOLATION:
            return True
        args = getattr(orig, "args", ())
        if args and args[0] == MYSQL_DUPLICATE_ENTRY:
            return True
        if "UNIQUE constraint failed" in str(orig):
            return True
    return False


def translate_store_errors(method: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Wrap store methods so driver and connection failures raise StoreUnavailableError.

    Example:
        >>> @translate_store_errors
        ... async def get(self, domain, code):
        ...     ...
    """

    @functools.wraps(method)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await method(*args, **kwargs)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            raise StoreUnavailableError(f"Durable store error: {exc}") from exc

    return wrapper


class SQLMappingStore(MappingStore):
    """Durable store over an async SQLAlchemy session factory.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects.
        engine: Owning engine, disposed on ``close()`` when given.
    """

    backend = StoreBackend.DURABLE

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @translate_store_errors
    async def insert_unique(self, domain: str, code: str, original_url: str) -> None:
        async with self._session_factory() as session:
            session.add(ShortenedURL(domain=domain, code=code, original_url=original_url))
            try:
                await session.commit()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise CollisionError(domain, code) from exc
                raise StoreUnavailableError(f"Durable store rejected mapping: {exc.orig}") from exc

    @translate_store_errors
    async def get(self, domain: str, code: str) -> str:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ShortenedURL.original_url).where(
                    ShortenedURL.domain == domain,
                    ShortenedURL.code == code,
                )
            )
            original_url = result.scalar_one_or_none()
        if original_url is None:
            raise NotFoundError(f"{domain}/{code}")
        return original_url

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, asyncio.TimeoutError):
            return False
        return True

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
