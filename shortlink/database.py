"""Database engine setup and schema management for the durable store.

This module provides SQLAlchemy async engine construction and idempotent schema
creation. Unlike a module-level engine, the engine is built from settings at
startup only when a DATABASE_URL is configured.

Flow Diagram — Startup
======================
::
    ┌──────────────────┐
    │ DATABASE_URL set?│
    └────────┬─────────┘
     NO ┌────┴────┐ YES
        ▼         ▼
  ┌──────────┐ ┌───────────────┐
  │ in-memory│ │ create engine │
  │ fallback │ └───────┬───────┘
  └──────────┘         ▼
               ┌───────────────┐
               │ init_schema() │
               │ (create_all)  │
               └───────────────┘

How to Use
===========
**Step 1 — Build an engine**::
    engine = create_engine_from_settings(settings)

**Step 2 — Create tables on startup**::
    await init_schema(engine)

**Step 3 — Open sessions**::
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        ...

**Step 4 — Cleanup on shutdown**::
    await engine.dispose()

Key Behaviours
===============
- Schema creation is idempotent: existing tables are left untouched.
- Connections are pre-pinged so a restarted database is picked up transparently.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine_from_settings():  Builds the async engine.
    create_session_factory():  Builds an async session factory.
    init_schema():  Creates all tables if absent.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import Settings

__all__ = ["Base", "create_engine_from_settings", "create_session_factory", "init_schema"]


class Base(DeclarativeBase):
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL is required to create a database engine")
    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    # imported for its side effect of registering the table on Base.metadata
    from shortlink import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
