from __future__ import annotations

import pytest
from fastapi import HTTPException

from snippy_backend.models import Collection, Snippet
from snippy_backend.schemas_collections import CollectionPatchRequest
from snippy_backend.schemas_snippets import SnippetPatchRequest
from snippy_backend.services.ownership import dedupe_ids, require_known_ids
from snippy_backend.update_sets import (
    COLLECTION_COLUMNS,
    SNIPPET_COLUMNS,
    SNIPPET_LIST_FIELDS,
    UpdateSet,
    build_owned_update,
    require_fields,
)


def test_update_set_keeps_only_provided_fields() -> None:
    payload = CollectionPatchRequest.model_validate({"color": " #112233 "})
    update_set = UpdateSet.from_payload(payload, allowed=COLLECTION_COLUMNS)

    assert dict(update_set) == {"color": "#112233"}
    assert "name" not in update_set
    assert not update_set.is_empty()

    empty = UpdateSet.from_payload(CollectionPatchRequest(), allowed=COLLECTION_COLUMNS)
    assert empty.is_empty()
    with pytest.raises(HTTPException) as excinfo:
        require_fields(empty)
    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "no fields to update"


def test_update_set_rejects_explicit_null() -> None:
    payload = SnippetPatchRequest.model_validate({"title": "ok", "is_public": None})
    with pytest.raises(HTTPException) as excinfo:
        _ = UpdateSet.from_payload(payload, allowed=set(SNIPPET_COLUMNS) | SNIPPET_LIST_FIELDS)
    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "is_public cannot be null"


def test_update_set_is_read_only() -> None:
    update_set = UpdateSet({"title": "x"})
    with pytest.raises(TypeError):
        update_set["title"] = "y"  # type: ignore[index]


def test_list_fields_stay_out_of_the_column_values() -> None:
    payload = SnippetPatchRequest.model_validate({"title": "t", "collection_ids": []})
    update_set = UpdateSet.from_payload(payload, allowed=set(SNIPPET_COLUMNS) | SNIPPET_LIST_FIELDS)

    assert update_set["collection_ids"] == []
    values = update_set.column_values(SNIPPET_COLUMNS)
    assert list(values.values()) == ["t"]


def test_owned_update_is_scoped_and_bumps_updated_at() -> None:
    stmt = build_owned_update(
        Collection,
        COLLECTION_COLUMNS,
        row_id="c-1",
        user_id="user-alice",
        update_set=UpdateSet({"name": "Renamed"}),
    )
    compiled = stmt.compile()
    sql = str(compiled)

    assert sql.startswith("UPDATE collections SET")
    assert "updated_at=" in sql
    assert "color" not in sql
    assert "WHERE collections.id = " in sql
    assert "AND collections.user_id = " in sql
    params = compiled.params
    assert params["name"] == "Renamed"
    assert "c-1" in params.values()
    assert "user-alice" in params.values()

    bump_only = build_owned_update(
        Snippet,
        SNIPPET_COLUMNS,
        row_id="s-1",
        user_id="user-alice",
        update_set=UpdateSet({}),
    )
    bump_sql = str(bump_only.compile())
    assert "updated_at=" in bump_sql
    assert "title" not in bump_sql


def test_dedupe_and_known_ids() -> None:
    assert dedupe_ids(["b", " a ", "", "b", "a"]) == ["b", "a"]

    require_known_ids(["a"], {"a", "b"}, label="tag_id")
    with pytest.raises(HTTPException) as excinfo:
        require_known_ids(["a", "zzz"], {"a"}, label="tag_id")
    assert excinfo.value.detail == "unknown tag_id: zzz"
