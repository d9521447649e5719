from __future__ import annotations

from typing import Any, cast

import httpx
import pytest

from snippy_backend.identity import make_identity_token
from snippy_backend.main import app  # pyright: ignore[reportMissingTypeStubs]


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def _bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_identity_token(user_id)}"}


def _data(resp: httpx.Response) -> Any:
    body = cast(dict[str, Any], resp.json())
    assert body["success"] is True, body
    assert "error" not in body
    return body["data"]


@pytest.mark.anyio
async def test_collection_lifecycle_strips_membership_from_snippets(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        r_col = await client.post("/api/collections", headers=alice, json={"name": "Utils"})
        assert r_col.status_code == 201
        col = _data(r_col)
        assert col["name"] == "Utils"
        assert col["color"] == "#3b82f6"
        assert col["snippet_count"] == 0
        assert col["position"] is None
        collection_id = col["id"]

        r_snip = await client.post(
            "/api/snippets",
            headers=alice,
            json={"title": "debounce", "content": "def debounce(): ...", "collection_ids": [collection_id]},
        )
        assert r_snip.status_code == 201
        snippet = _data(r_snip)
        assert snippet["collection_ids"] == [collection_id]
        assert snippet["fork_count"] == 0
        assert snippet["forked_from"] is None

        r_list = await client.get(
            "/api/snippets", headers=alice, params={"collection_id": collection_id}
        )
        assert r_list.status_code == 200
        listed = _data(r_list)
        assert [s["id"] for s in listed] == [snippet["id"]]

        r_cols = await client.get("/api/collections", headers=alice)
        assert _data(r_cols)[0]["snippet_count"] == 1

        r_del = await client.delete(f"/api/collections/{collection_id}", headers=alice)
        assert r_del.status_code == 200
        assert _data(r_del) == {"id": collection_id}

        r_get = await client.get(f"/api/snippets/{snippet['id']}", headers=alice)
        assert r_get.status_code == 200
        assert collection_id not in _data(r_get)["collection_ids"]

        r_list_after = await client.get(
            "/api/snippets", headers=alice, params={"collection_id": collection_id}
        )
        assert _data(r_list_after) == []

        r_del_again = await client.delete(f"/api/collections/{collection_id}", headers=alice)
        assert r_del_again.status_code == 404
        body = r_del_again.json()
        assert body == {
            "success": False,
            "message": "not_found",
            "error": "collection not found",
        }


@pytest.mark.anyio
async def test_collections_are_scoped_to_their_owner(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")
    bob = _bearer("user-bob")

    async with _make_async_client() as client:
        r401 = await client.get("/api/collections")
        assert r401.status_code == 401
        assert r401.json()["message"] == "unauthenticated"

        r_col = await client.post("/api/collections", headers=alice, json={"name": "Private"})
        collection_id = _data(r_col)["id"]

        r_bob_list = await client.get("/api/collections", headers=bob)
        assert _data(r_bob_list) == []

        r_bob_get = await client.get(f"/api/collections/{collection_id}", headers=bob)
        assert r_bob_get.status_code == 404

        # The same name is free for another owner.
        r_bob_create = await client.post("/api/collections", headers=bob, json={"name": "Private"})
        assert r_bob_create.status_code == 201

        r_dup = await client.post("/api/collections", headers=alice, json={"name": "Private"})
        assert r_dup.status_code == 409
        assert r_dup.json()["message"] == "conflict"

        r_blank = await client.post("/api/collections", headers=alice, json={"name": "   "})
        assert r_blank.status_code == 400
        assert r_blank.json()["message"] == "invalid_request"
        assert r_blank.json()["error"].startswith("name:")

        # Snippets cannot be filed into someone else's collection.
        r_foreign = await client.post(
            "/api/snippets",
            headers=bob,
            json={"title": "t", "content": "c", "collection_ids": [collection_id]},
        )
        assert r_foreign.status_code == 400
        assert r_foreign.json()["error"] == f"unknown collection_id: {collection_id}"


@pytest.mark.anyio
async def test_collection_snippets_listing_uses_positions(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        collection_id = _data(
            await client.post("/api/collections", headers=alice, json={"name": "Ordered"})
        )["id"]

        ids: list[str] = []
        for title in ("first", "second", "third"):
            r = await client.post(
                "/api/snippets",
                headers=alice,
                json={"title": title, "content": "x", "collection_ids": [collection_id]},
            )
            ids.append(_data(r)["id"])

        r_pos = await client.put(
            f"/api/collections/{collection_id}/snippets/positions",
            headers=alice,
            json={
                "positions": [
                    {"snippet_id": ids[0], "position": 3},
                    {"snippet_id": ids[1], "position": 1},
                    {"snippet_id": ids[2], "position": 2},
                ]
            },
        )
        assert r_pos.status_code == 200
        assert _data(r_pos) == {"updated": 3}

        r_list = await client.get(f"/api/collections/{collection_id}/snippets", headers=alice)
        assert r_list.status_code == 200
        data = _data(r_list)
        assert data["collection"]["id"] == collection_id
        assert data["collection"]["snippet_count"] == 3
        assert [s["id"] for s in data["snippets"]] == [ids[1], ids[2], ids[0]]
        assert [s["position"] for s in data["snippets"]] == [1, 2, 3]
