from __future__ import annotations

from typing import Any, cast

import httpx
import pytest
from fastapi import HTTPException

from snippy_backend.identity import make_identity_token
from snippy_backend.main import app  # pyright: ignore[reportMissingTypeStubs]
from snippy_backend.services.positions_service import validate_batch


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def _bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_identity_token(user_id)}"}


def _data(resp: httpx.Response) -> Any:
    body = cast(dict[str, Any], resp.json())
    assert body["success"] is True, body
    return body["data"]


def test_validate_batch_rejects_empty_and_duplicates() -> None:
    with pytest.raises(HTTPException) as empty:
        validate_batch([], id_label="collection_id")
    assert empty.value.status_code == 400
    assert empty.value.detail == "no positions provided"

    with pytest.raises(HTTPException) as dup_pos:
        validate_batch([("a", 1), ("b", 1)], id_label="collection_id")
    assert dup_pos.value.detail == "duplicate position 1"

    with pytest.raises(HTTPException) as dup_id:
        validate_batch([("a", 1), ("a", 2)], id_label="collection_id")
    assert dup_id.value.detail == "duplicate collection_id a"

    validate_batch([("a", 5), ("b", 0)], id_label="collection_id")


@pytest.mark.anyio
async def test_collection_reorder_orders_listing_and_is_all_or_nothing(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        ids: dict[str, str] = {}
        for name in ("A", "B", "C"):
            ids[name] = _data(
                await client.post("/api/collections", headers=alice, json={"name": name})
            )["id"]

        r_order = await client.put(
            "/api/collections/positions",
            headers=alice,
            json={
                "positions": [
                    {"collection_id": ids["A"], "position": 2},
                    {"collection_id": ids["B"], "position": 0},
                ]
            },
        )
        assert r_order.status_code == 200
        assert _data(r_order) == {"updated": 2}

        listed = _data(await client.get("/api/collections", headers=alice))
        # Positioned collections first; never-ordered ones trail with a null position.
        assert [(c["name"], c["position"]) for c in listed] == [
            ("B", 0),
            ("A", 2),
            ("C", None),
        ]

        r_dup = await client.put(
            "/api/collections/positions",
            headers=alice,
            json={
                "positions": [
                    {"collection_id": ids["A"], "position": 7},
                    {"collection_id": ids["C"], "position": 7},
                ]
            },
        )
        assert r_dup.status_code == 400
        assert r_dup.json()["error"] == "duplicate position 7"

        r_empty = await client.put("/api/collections/positions", headers=alice, json={"positions": []})
        assert r_empty.status_code == 400
        assert r_empty.json()["error"] == "no positions provided"

        # Moving B again is an upsert, not a second row.
        r_move = await client.put(
            "/api/collections/positions",
            headers=alice,
            json={"positions": [{"collection_id": ids["B"], "position": 9}]},
        )
        assert r_move.status_code == 200

        listed_after = _data(await client.get("/api/collections", headers=alice))
        assert [(c["name"], c["position"]) for c in listed_after] == [
            ("A", 2),
            ("B", 9),
            ("C", None),
        ]


@pytest.mark.anyio
async def test_reorder_with_foreign_entry_is_forbidden_and_writes_nothing(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")
    bob = _bearer("user-bob")

    async with _make_async_client() as client:
        mine = _data(await client.post("/api/collections", headers=alice, json={"name": "Mine"}))
        theirs = _data(await client.post("/api/collections", headers=bob, json={"name": "Theirs"}))

        r = await client.put(
            "/api/collections/positions",
            headers=alice,
            json={
                "positions": [
                    {"collection_id": mine["id"], "position": 1},
                    {"collection_id": theirs["id"], "position": 2},
                ]
            },
        )
        assert r.status_code == 403
        assert r.json()["message"] == "forbidden"

        listed = _data(await client.get("/api/collections", headers=alice))
        assert listed[0]["position"] is None

        listed_bob = _data(await client.get("/api/collections", headers=bob))
        assert listed_bob[0]["position"] is None


@pytest.mark.anyio
async def test_snippet_reorder_requires_membership(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        collection_id = _data(
            await client.post("/api/collections", headers=alice, json={"name": "Box"})
        )["id"]
        inside = _data(
            await client.post(
                "/api/snippets",
                headers=alice,
                json={"title": "in", "content": "x", "collection_ids": [collection_id]},
            )
        )
        outside = _data(
            await client.post("/api/snippets", headers=alice, json={"title": "out", "content": "x"})
        )

        r_outside = await client.put(
            f"/api/collections/{collection_id}/snippets/positions",
            headers=alice,
            json={
                "positions": [
                    {"snippet_id": inside["id"], "position": 0},
                    {"snippet_id": outside["id"], "position": 1},
                ]
            },
        )
        assert r_outside.status_code == 403
        assert r_outside.json()["error"] == "snippet not found or not in collection"

        r_foreign = await client.put(
            f"/api/collections/{collection_id}/snippets/positions",
            headers=_bearer("user-bob"),
            json={"positions": [{"snippet_id": inside["id"], "position": 0}]},
        )
        assert r_foreign.status_code == 403
        assert r_foreign.json()["error"] == "collection not found or access denied"

        listing = _data(await client.get(f"/api/collections/{collection_id}/snippets", headers=alice))
        assert [(s["id"], s["position"]) for s in listing["snippets"]] == [(inside["id"], 0)]
