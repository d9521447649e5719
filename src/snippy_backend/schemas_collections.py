from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class CollectionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    color: str | None = Field(default=None, min_length=1, max_length=32)

    @field_validator("name", "color", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class CollectionPatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    color: str | None = Field(default=None, min_length=1, max_length=32)

    @field_validator("name", "color", mode="before")
    @classmethod
    def _strip(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class CollectionOut(BaseModel):
    id: str
    user_id: str
    name: str
    color: str
    snippet_count: int = 0
    # Null until the owner reorders their collections.
    position: int | None = None
    created_at: datetime
    updated_at: datetime


class CollectionSnippetItem(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    is_favorite: bool
    position: int
    created_at: datetime


class CollectionSnippetsOut(BaseModel):
    collection: CollectionOut
    snippets: list[CollectionSnippetItem] = Field(default_factory=list)


class CollectionPositionItem(BaseModel):
    collection_id: str = Field(min_length=1, max_length=36)
    position: int = Field(ge=0)


class CollectionPositionsRequest(BaseModel):
    positions: list[CollectionPositionItem] = Field(default_factory=list)


class SnippetPositionItem(BaseModel):
    snippet_id: str = Field(min_length=1, max_length=36)
    position: int = Field(ge=0)


class SnippetPositionsRequest(BaseModel):
    positions: list[SnippetPositionItem] = Field(default_factory=list)


class PositionsUpdated(BaseModel):
    updated: int
