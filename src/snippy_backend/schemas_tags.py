from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def normalize_tag_name(value: str) -> str:
    return value.strip().lower()


class TagCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str | None = Field(default=None, min_length=1, max_length=32)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v: object) -> object:
        return normalize_tag_name(v) if isinstance(v, str) else v


class TagPatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, min_length=1, max_length=32)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v: object) -> object:
        return normalize_tag_name(v) if isinstance(v, str) else v


class TagOut(BaseModel):
    id: str
    user_id: str
    name: str
    color: str
    created_at: datetime
    updated_at: datetime


class TagDeleted(BaseModel):
    deleted_tag_id: str
    deleted_tag_name: str
