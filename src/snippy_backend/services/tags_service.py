from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db import run_in_transaction
from snippy_backend.models import Tag, as_utc, utc_now
from snippy_backend.repositories import snippets_repo, tags_repo
from snippy_backend.schemas_tags import TagCreateRequest, TagDeleted, TagOut, TagPatchRequest
from snippy_backend.services.ownership import require_owner
from snippy_backend.update_sets import TAG_COLUMNS, UpdateSet, require_fields

logger = logging.getLogger(__name__)

_NAME_TAKEN = "tag with this name already exists"


def to_tag_out(t: Tag) -> TagOut:
    return TagOut(
        id=t.id,
        user_id=t.user_id,
        name=t.name,
        color=t.color,
        created_at=as_utc(t.created_at),
        updated_at=as_utc(t.updated_at),
    )


async def list_tags(session: AsyncSession, *, user_id: str) -> list[TagOut]:
    return [to_tag_out(t) for t in await tags_repo.list_tags(session, user_id=user_id)]


async def create_tag(session: AsyncSession, *, user_id: str, payload: TagCreateRequest) -> TagOut:
    now = utc_now()
    tag = Tag(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=payload.name,
        color=payload.color or settings.default_color,
        created_at=now,
        updated_at=now,
    )

    async def _apply(tx: AsyncSession) -> TagOut:
        tx.add(tag)
        await tx.flush()
        return to_tag_out(tag)

    try:
        return await run_in_transaction(session, _apply)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_NAME_TAKEN)


async def update_tag(
    session: AsyncSession, *, user_id: str, tag_id: str, payload: TagPatchRequest
) -> TagOut:
    update_set = UpdateSet.from_payload(payload, allowed=TAG_COLUMNS)

    async def _apply(tx: AsyncSession) -> TagOut:
        existing = await tags_repo.get_tag(tx, tag_id=tag_id)
        require_owner(existing, user_id=user_id, not_found="tag not found")
        require_fields(update_set)

        tag = await tags_repo.update_tag(tx, user_id=user_id, tag_id=tag_id, update_set=update_set)
        if tag is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="tag not found")
        return to_tag_out(tag)

    try:
        return await run_in_transaction(session, _apply)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_NAME_TAKEN)


async def delete_tag(session: AsyncSession, *, user_id: str, tag_id: str) -> TagDeleted:
    async def _apply(tx: AsyncSession) -> TagDeleted:
        owned = await tags_repo.get_owned_tag(tx, user_id=user_id, tag_id=tag_id)
        if owned is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="tag not found")
        name = owned.name

        stripped = await snippets_repo.strip_tag(tx, tag_id=tag_id)
        await tags_repo.delete_tag_row(tx, user_id=user_id, tag_id=tag_id)
        logger.info(
            "tag deleted user_id=%s tag_id=%s memberships=%d", user_id, tag_id, stripped
        )
        return TagDeleted(deleted_tag_id=tag_id, deleted_tag_name=name)

    return await run_in_transaction(session, _apply)
