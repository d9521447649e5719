from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OwnedRow(SQLModel):
    # Subject of the identity token; users live in the external identity provider.
    user_id: str = Field(index=True, min_length=1, max_length=128)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


class Collection(OwnedRow, table=True):
    __tablename__ = "collections"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_collections_user_id_name"),)

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    color: str = Field(default="#3b82f6", max_length=32)


class Snippet(OwnedRow, table=True):
    __tablename__ = "snippets"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    title: str = Field(min_length=1, max_length=500)
    content: str = Field(default="", sa_type=sa.Text)

    is_public: bool = Field(default=False, index=True)
    is_favorite: bool = Field(default=False)

    # Sources may be deleted later; keep the id as plain provenance (no FK).
    forked_from: Optional[str] = Field(default=None, index=True, max_length=36)
    fork_count: int = Field(default=0, index=True)


class Tag(OwnedRow, table=True):
    __tablename__ = "tags"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_id_name"),)

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    # Stored trimmed and lower-cased.
    name: str = Field(min_length=1, max_length=100)
    color: str = Field(default="#3b82f6", max_length=32)


class SnippetCollection(SQLModel, table=True):
    """Membership of a snippet in a collection; ``ordinal`` keeps caller order."""

    __tablename__ = "snippet_collections"  # pyright: ignore[reportAssignmentType]

    snippet_id: str = Field(primary_key=True, foreign_key="snippets.id", max_length=36)
    collection_id: str = Field(
        primary_key=True, foreign_key="collections.id", index=True, max_length=36
    )
    ordinal: int = Field(default=0)


class SnippetTag(SQLModel, table=True):
    __tablename__ = "snippet_tags"  # pyright: ignore[reportAssignmentType]

    snippet_id: str = Field(primary_key=True, foreign_key="snippets.id", max_length=36)
    tag_id: str = Field(primary_key=True, foreign_key="tags.id", index=True, max_length=36)
    ordinal: int = Field(default=0)


class CollectionPosition(SQLModel, table=True):
    __tablename__ = "collection_positions"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint("user_id", "collection_id", name="uq_collection_positions_user_collection"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, max_length=128)
    collection_id: str = Field(index=True, max_length=36)
    position: int
    updated_at: datetime = Field(default_factory=utc_now)


class CollectionSnippetPosition(SQLModel, table=True):
    __tablename__ = "collection_snippet_positions"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "collection_id",
            "snippet_id",
            name="uq_collection_snippet_positions_user_collection_snippet",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, max_length=128)
    collection_id: str = Field(index=True, max_length=36)
    snippet_id: str = Field(index=True, max_length=36)
    position: int
    updated_at: datetime = Field(default_factory=utc_now)
