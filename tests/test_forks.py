from __future__ import annotations

import asyncio
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
    return body["data"]


async def _public_snippet(client: httpx.AsyncClient, headers: dict[str, str]) -> dict[str, Any]:
    collection_id = _data(
        await client.post("/api/collections", headers=headers, json={"name": "Owner stuff"})
    )["id"]
    tag_id = _data(await client.post("/api/tags", headers=headers, json={"name": "shared"}))["id"]
    r = await client.post(
        "/api/snippets",
        headers=headers,
        json={
            "title": "Quick sort",
            "content": "def qs(xs): ...",
            "is_public": True,
            "is_favorite": True,
            "collection_ids": [collection_id],
            "tag_ids": [tag_id],
        },
    )
    assert r.status_code == 201
    return cast(dict[str, Any], _data(r))


@pytest.mark.anyio
async def test_fork_copies_content_and_bumps_source(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")
    bob = _bearer("user-bob")

    async with _make_async_client() as client:
        source = await _public_snippet(client, alice)

        r_fork = await client.post(f"/api/snippets/{source['id']}/fork", headers=bob)
        assert r_fork.status_code == 201
        fork = _data(r_fork)
        assert fork["id"] != source["id"]
        assert fork["user_id"] == "user-bob"
        assert fork["title"] == source["title"]
        assert fork["content"] == source["content"]
        assert fork["forked_from"] == source["id"]
        assert fork["fork_count"] == 0
        assert fork["is_public"] is False
        assert fork["is_favorite"] is False
        assert fork["tag_ids"] == source["tag_ids"]
        assert fork["collection_ids"] == []

        refreshed = _data(await client.get(f"/api/public/snippets/{source['id']}"))
        assert refreshed["fork_count"] == 1

        # The fork belongs to bob now.
        mine = _data(await client.get("/api/snippets", headers=bob))
        assert [s["id"] for s in mine] == [fork["id"]]


@pytest.mark.anyio
async def test_fork_by_body_and_own_snippet(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        source = await _public_snippet(client, alice)

        r_fork = await client.post("/api/snippets/fork", headers=alice, json={"id": source["id"]})
        assert r_fork.status_code == 201
        assert _data(r_fork)["forked_from"] == source["id"]

        refreshed = _data(await client.get(f"/api/snippets/{source['id']}", headers=alice))
        assert refreshed["fork_count"] == 1

        r_missing_body = await client.post("/api/snippets/fork", headers=alice, json={})
        assert r_missing_body.status_code == 400
        assert r_missing_body.json()["message"] == "invalid_request"


@pytest.mark.anyio
async def test_private_or_missing_source_is_not_found(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")
    bob = _bearer("user-bob")

    async with _make_async_client() as client:
        private = _data(
            await client.post(
                "/api/snippets", headers=alice, json={"title": "secret", "content": "x"}
            )
        )

        r_private = await client.post(f"/api/snippets/{private['id']}/fork", headers=bob)
        assert r_private.status_code == 404
        assert r_private.json()["error"] == "public snippet not found"

        r_missing = await client.post("/api/snippets/nope/fork", headers=bob)
        assert r_missing.status_code == 404

        r_anon = await client.post(f"/api/snippets/{private['id']}/fork")
        assert r_anon.status_code == 401

        unchanged = _data(await client.get(f"/api/snippets/{private['id']}", headers=alice))
        assert unchanged["fork_count"] == 0


@pytest.mark.anyio
async def test_concurrent_forks_each_count(temp_db: str) -> None:
    _ = temp_db
    alice = _bearer("user-alice")

    async with _make_async_client() as client:
        source = await _public_snippet(client, alice)

        r_bob, r_carol = await asyncio.gather(
            client.post(f"/api/snippets/{source['id']}/fork", headers=_bearer("user-bob")),
            client.post(f"/api/snippets/{source['id']}/fork", headers=_bearer("user-carol")),
        )
        assert r_bob.status_code == 201
        assert r_carol.status_code == 201

        forks = [_data(r_bob), _data(r_carol)]
        assert {f["user_id"] for f in forks} == {"user-bob", "user-carol"}
        for f in forks:
            assert f["forked_from"] == source["id"]
            assert f["fork_count"] == 0
            assert f["is_public"] is False

        refreshed = _data(await client.get(f"/api/public/snippets/{source['id']}"))
        assert refreshed["fork_count"] == 2
