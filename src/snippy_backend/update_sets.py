"""Partial-update plumbing shared by the collection, snippet and tag repositories.

A PATCH body is reduced to an ``UpdateSet``: the fields the caller actually sent
(pydantic ``model_fields_set``) mapped to their values. Omitted fields never
reach SQL; an explicit ``null`` is rejected because none of the patchable
fields are nullable.

Columns are resolved through fixed per-model tables, so no SQL identifier is
ever derived from request input.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any, cast

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.sql.dml import Update

from snippy_backend.models import Collection, Snippet, Tag, utc_now


COLLECTION_COLUMNS: Mapping[str, Any] = MappingProxyType(
    {"name": Collection.name, "color": Collection.color}
)
SNIPPET_COLUMNS: Mapping[str, Any] = MappingProxyType(
    {
        "title": Snippet.title,
        "content": Snippet.content,
        "is_public": Snippet.is_public,
        "is_favorite": Snippet.is_favorite,
    }
)
# Membership lists live in association tables, not columns.
SNIPPET_LIST_FIELDS: frozenset[str] = frozenset({"collection_ids", "tag_ids"})
TAG_COLUMNS: Mapping[str, Any] = MappingProxyType({"name": Tag.name, "color": Tag.color})


class UpdateSet(Mapping[str, Any]):
    """Immutable mapping of provided field name -> provided value."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any]) -> None:
        self._fields: Mapping[str, Any] = MappingProxyType(dict(fields))

    @classmethod
    def from_payload(cls, payload: BaseModel, *, allowed: Iterable[str]) -> "UpdateSet":
        allowed_set = set(allowed)
        fields: dict[str, Any] = {}
        # Iterate in declaration order for stable statements.
        for name in type(payload).model_fields:
            if name not in payload.model_fields_set or name not in allowed_set:
                continue
            value = getattr(payload, name)
            if value is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail=f"{name} cannot be null"
                )
            fields[name] = value
        return cls(fields)

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"UpdateSet({dict(self._fields)!r})"

    def is_empty(self) -> bool:
        return not self._fields

    def column_values(self, columns: Mapping[str, Any]) -> dict[Any, Any]:
        return {columns[name]: value for name, value in self._fields.items() if name in columns}


def require_fields(update_set: UpdateSet) -> None:
    if update_set.is_empty():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="no fields to update")


def build_owned_update(
    model: Any,
    columns: Mapping[str, Any],
    *,
    row_id: str,
    user_id: str,
    update_set: UpdateSet,
) -> Update:
    """UPDATE scoped to ``id = :row_id AND user_id = :user_id``; always bumps ``updated_at``."""

    values = update_set.column_values(columns)
    values[model.updated_at] = utc_now()
    return cast(
        Update,
        update(model).where(model.id == row_id).where(model.user_id == user_id).values(values),
    )
