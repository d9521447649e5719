from __future__ import annotations

from pathlib import Path
from typing import Any, cast

import httpx
import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from snippy_backend.config import settings
from snippy_backend.db import dispose_engine, reset_engine_cache
from snippy_backend.identity import make_identity_token
from snippy_backend.main import app  # pyright: ignore[reportMissingTypeStubs]


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def _alembic_config() -> Config:
    return Config("alembic.ini")


def _table_names(db_file: Path) -> set[str]:
    engine = sa.create_engine(f"sqlite:///{db_file}")
    try:
        return set(sa.inspect(engine).get_table_names())
    finally:
        engine.dispose()


@pytest.mark.anyio
async def test_migrated_schema_serves_the_api_and_downgrades_cleanly(tmp_path: Path) -> None:
    db_file = tmp_path / "test-alembic.db"
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{db_file}"
        reset_engine_cache()
        command.upgrade(_alembic_config(), "head")

        assert {
            "collections",
            "snippets",
            "tags",
            "snippet_collections",
            "snippet_tags",
            "collection_positions",
            "collection_snippet_positions",
        } <= _table_names(db_file)

        headers = {"Authorization": f"Bearer {make_identity_token('user-migrated')}"}
        async with _make_async_client() as client:
            r_col = await client.post("/api/collections", headers=headers, json={"name": "M"})
            assert r_col.status_code == 201
            collection_id = cast(dict[str, Any], r_col.json())["data"]["id"]

            r_snip = await client.post(
                "/api/snippets",
                headers=headers,
                json={"title": "t", "content": "c", "collection_ids": [collection_id]},
            )
            assert r_snip.status_code == 201
            snippet_id = cast(dict[str, Any], r_snip.json())["data"]["id"]

            r_pos = await client.put(
                f"/api/collections/{collection_id}/snippets/positions",
                headers=headers,
                json={"positions": [{"snippet_id": snippet_id, "position": 0}]},
            )
            assert r_pos.status_code == 200

            r_health = await client.get("/api/health")
            assert r_health.status_code == 200

        await dispose_engine()
        command.downgrade(_alembic_config(), "base")
        assert _table_names(db_file) <= {"alembic_version"}
    finally:
        await dispose_engine()
        settings.database_url = old_db
        reset_engine_cache()
