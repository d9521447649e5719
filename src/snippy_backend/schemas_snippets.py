from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class SnippetCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    collection_ids: list[str] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)
    is_public: bool = False
    is_favorite: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content is required")
        return v


class SnippetPatchRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: str | None = Field(default=None, min_length=1)
    collection_ids: list[str] | None = None
    tag_ids: list[str] | None = None
    is_public: bool | None = None
    is_favorite: bool | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("content is required")
        return v


class SnippetOut(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    collection_ids: list[str] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)
    # Resolved in tag_ids order on detail reads.
    tag_names: list[str] = Field(default_factory=list)
    is_public: bool
    is_favorite: bool
    forked_from: str | None = None
    fork_count: int = 0
    created_at: datetime
    updated_at: datetime


class ForkRequest(BaseModel):
    id: str = Field(min_length=1, max_length=36)


class SnippetTagsRequest(BaseModel):
    tag_ids: list[str] = Field(default_factory=list)


class SnippetTagsAssigned(BaseModel):
    snippet_id: str
    tag_count: int
