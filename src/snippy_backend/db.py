from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db_urls import (
    ensure_sqlite_parent_dir,
    is_sqlite_url,
    normalize_database_url_for_async,
)

T = TypeVar("T")


def _create_async_engine(database_url: str) -> AsyncEngine:
    # Always run on the async driver so local and deployed behaviour match.
    url = normalize_database_url_for_async(database_url)
    kwargs: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if is_sqlite_url(database_url):
        ensure_sqlite_parent_dir(database_url)
    else:
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
    return create_async_engine(url, **kwargs)


@lru_cache(maxsize=4)
def get_engine() -> AsyncEngine:
    # Tests and deployments may swap settings.database_url and rebuild the engine.
    return _create_async_engine(settings.database_url)


def reset_engine_cache() -> None:
    get_engine.cache_clear()


async def dispose_engine() -> None:
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
    get_engine.cache_clear()


def dispose_engine_cache() -> None:
    # Sync variant for shutdown hooks without a running loop: drop pooled
    # connections without awaiting their close.
    if get_engine.cache_info().currsize:
        get_engine().sync_engine.dispose(close=False)
    get_engine.cache_clear()


async def init_db() -> None:
    # Local/test fallback only; production schema is owned by Alembic.
    from snippy_backend import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def _session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    async with _session_maker()() as session:
        yield session


async def get_session() -> AsyncIterator[AsyncSession]:
    async with _session_maker()() as session:
        yield session


async def ping(session: AsyncSession) -> None:
    conn = await session.connection()
    _ = await conn.execute(text("SELECT 1"))


async def run_in_transaction(
    session: AsyncSession, work: Callable[[AsyncSession], Awaitable[T]]
) -> T:
    """Run ``work`` as one unit of work on ``session``.

    Joins a transaction that is already open (autobegun by an earlier read) and
    commits it, otherwise opens ``session.begin()``. Any exception rolls the
    whole unit back and propagates to the caller.
    """

    try:
        if session.in_transaction():
            out = await work(session)
            await session.commit()
            return out

        async with session.begin():
            return await work(session)
    except Exception:
        if session.in_transaction():
            await session.rollback()
        raise
