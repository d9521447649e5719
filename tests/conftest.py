from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from snippy_backend.config import settings
from snippy_backend.db import dispose_engine, dispose_engine_cache, init_db, reset_engine_cache


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
async def _dispose_engine_cache_per_test(  # pyright: ignore[reportUnusedFunction]
    anyio_backend: object,  # noqa: ARG001
) -> AsyncGenerator[None, None]:
    # Dispose the cached AsyncEngine (aiosqlite worker threads) while the
    # per-test event loop is still alive.
    _ = anyio_backend
    yield
    await dispose_engine()


@pytest.fixture
async def temp_db(tmp_path: Path, anyio_backend: object) -> AsyncGenerator[str, None]:  # noqa: ARG001
    """Point the app at a fresh SQLite file with the schema created."""

    _ = anyio_backend
    old_db = settings.database_url
    settings.database_url = f"sqlite:///{tmp_path / 'test.db'}"
    reset_engine_cache()
    try:
        await init_db()
        yield settings.database_url
    finally:
        await dispose_engine()
        settings.database_url = old_db
        reset_engine_cache()


def pytest_sessionfinish(session: object, exitstatus: int) -> None:  # noqa: ARG001
    # Safety net: drop the cached engine so CI can exit cleanly.
    _ = session, exitstatus
    dispose_engine_cache()
