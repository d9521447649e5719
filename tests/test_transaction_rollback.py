from __future__ import annotations

from typing import Any, cast

import httpx
import pytest

from snippy_backend.identity import make_identity_token
from snippy_backend.main import app  # pyright: ignore[reportMissingTypeStubs]
from snippy_backend.repositories import snippets_repo


def _make_async_client() -> httpx.AsyncClient:
    # Unhandled errors come back as the 500 envelope instead of propagating.
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def _bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_identity_token(user_id)}"}


def _data(resp: httpx.Response) -> Any:
    body = cast(dict[str, Any], resp.json())
    assert body["success"] is True, body
    return body["data"]


async def _fail(*args: object, **kwargs: object) -> None:
    raise RuntimeError("simulated database failure")


@pytest.mark.anyio
async def test_failed_fork_keeps_fork_count_and_creates_nothing(
    temp_db: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    _ = temp_db
    alice = _bearer("user-alice")
    bob = _bearer("user-bob")

    async with _make_async_client() as client:
        tag_id = _data(await client.post("/api/tags", headers=alice, json={"name": "algo"}))["id"]
        source = _data(
            await client.post(
                "/api/snippets",
                headers=alice,
                json={
                    "title": "heap",
                    "content": "import heapq",
                    "is_public": True,
                    "tag_ids": [tag_id],
                },
            )
        )

        # Fails after fork_count was bumped and the fork row was flushed.
        monkeypatch.setattr(snippets_repo, "replace_tag_memberships", _fail)

        r = await client.post(f"/api/snippets/{source['id']}/fork", headers=bob)
        assert r.status_code == 500
        assert r.json() == {
            "success": False,
            "message": "internal_error",
            "error": "internal server error",
        }

        monkeypatch.undo()

        refreshed = _data(await client.get(f"/api/public/snippets/{source['id']}"))
        assert refreshed["fork_count"] == 0
        assert _data(await client.get("/api/snippets", headers=bob)) == []


@pytest.mark.anyio
async def test_failed_collection_delete_keeps_positions_and_memberships(
    temp_db: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        collection_id = _data(
            await client.post("/api/collections", headers=alice, json={"name": "Keep"})
        )["id"]
        snippet_id = _data(
            await client.post(
                "/api/snippets",
                headers=alice,
                json={"title": "t", "content": "c", "collection_ids": [collection_id]},
            )
        )["id"]
        r_pos = await client.put(
            "/api/collections/positions",
            headers=alice,
            json={"positions": [{"collection_id": collection_id, "position": 3}]},
        )
        assert r_pos.status_code == 200
        r_snip_pos = await client.put(
            f"/api/collections/{collection_id}/snippets/positions",
            headers=alice,
            json={"positions": [{"snippet_id": snippet_id, "position": 5}]},
        )
        assert r_snip_pos.status_code == 200

        # Fails after the position rows were deleted.
        monkeypatch.setattr(snippets_repo, "strip_collection", _fail)

        r = await client.delete(f"/api/collections/{collection_id}", headers=alice)
        assert r.status_code == 500
        assert r.json()["message"] == "internal_error"

        monkeypatch.undo()

        collection = _data(await client.get(f"/api/collections/{collection_id}", headers=alice))
        assert collection["position"] == 3
        assert collection["snippet_count"] == 1

        snippet = _data(await client.get(f"/api/snippets/{snippet_id}", headers=alice))
        assert snippet["collection_ids"] == [collection_id]

        listing = _data(await client.get(f"/api/collections/{collection_id}/snippets", headers=alice))
        assert [(s["id"], s["position"]) for s in listing["snippets"]] == [(snippet_id, 5)]
