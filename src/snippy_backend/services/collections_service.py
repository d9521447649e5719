from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db import run_in_transaction
from snippy_backend.models import Collection, as_utc, utc_now
from snippy_backend.repositories import collections_repo, positions_repo, snippets_repo
from snippy_backend.schemas_collections import (
    CollectionCreateRequest,
    CollectionOut,
    CollectionPatchRequest,
    CollectionSnippetItem,
    CollectionSnippetsOut,
)
from snippy_backend.schemas_common import IdData
from snippy_backend.services.ownership import require_owner
from snippy_backend.update_sets import COLLECTION_COLUMNS, UpdateSet, require_fields

logger = logging.getLogger(__name__)

_NAME_TAKEN = "collection with this name already exists"


def _new_id() -> str:
    return str(uuid.uuid4())


def to_collection_out(
    c: Collection, *, snippet_count: int = 0, position: int | None = None
) -> CollectionOut:
    return CollectionOut(
        id=c.id,
        user_id=c.user_id,
        name=c.name,
        color=c.color,
        snippet_count=snippet_count,
        position=position,
        created_at=as_utc(c.created_at),
        updated_at=as_utc(c.updated_at),
    )


async def list_collections(session: AsyncSession, *, user_id: str) -> list[CollectionOut]:
    rows = await collections_repo.list_collections_with_stats(session, user_id=user_id)
    return [to_collection_out(c, snippet_count=n, position=p) for c, n, p in rows]


async def get_collection(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> CollectionOut:
    row = await collections_repo.get_collection_with_stats(
        session, user_id=user_id, collection_id=collection_id
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="collection not found")
    c, n, p = row
    return to_collection_out(c, snippet_count=n, position=p)


async def create_collection(
    session: AsyncSession, *, user_id: str, payload: CollectionCreateRequest
) -> CollectionOut:
    now = utc_now()
    collection = Collection(
        id=_new_id(),
        user_id=user_id,
        name=payload.name,
        color=payload.color or settings.default_color,
        created_at=now,
        updated_at=now,
    )

    async def _apply(tx: AsyncSession) -> CollectionOut:
        tx.add(collection)
        await tx.flush()
        return to_collection_out(collection)

    try:
        return await run_in_transaction(session, _apply)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_NAME_TAKEN)


async def update_collection(
    session: AsyncSession,
    *,
    user_id: str,
    collection_id: str,
    payload: CollectionPatchRequest,
) -> CollectionOut:
    update_set = UpdateSet.from_payload(payload, allowed=COLLECTION_COLUMNS)

    async def _apply(tx: AsyncSession) -> CollectionOut:
        existing = await collections_repo.get_collection(tx, collection_id=collection_id)
        require_owner(existing, user_id=user_id, not_found="collection not found")
        require_fields(update_set)

        await collections_repo.update_collection(
            tx, user_id=user_id, collection_id=collection_id, update_set=update_set
        )
        row = await collections_repo.get_collection_with_stats(
            tx, user_id=user_id, collection_id=collection_id
        )
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="collection not found"
            )
        c, n, p = row
        return to_collection_out(c, snippet_count=n, position=p)

    try:
        return await run_in_transaction(session, _apply)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_NAME_TAKEN)


async def delete_collection(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> IdData:
    """Delete a collection; member snippets are kept and only lose the membership."""

    async def _apply(tx: AsyncSession) -> IdData:
        # Existence-blind: a foreign collection looks exactly like a missing one.
        owned = await collections_repo.get_owned_collection(
            tx, user_id=user_id, collection_id=collection_id
        )
        if owned is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="collection not found"
            )

        positions = await positions_repo.delete_positions_for_collection(
            tx, collection_id=collection_id
        )
        stripped = await snippets_repo.strip_collection(tx, collection_id=collection_id)
        await collections_repo.delete_collection_row(
            tx, user_id=user_id, collection_id=collection_id
        )
        logger.info(
            "collection deleted user_id=%s collection_id=%s positions=%d memberships=%d",
            user_id,
            collection_id,
            positions,
            stripped,
        )
        return IdData(id=collection_id)

    return await run_in_transaction(session, _apply)


async def list_collection_snippets(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> CollectionSnippetsOut:
    collection = await get_collection(session, user_id=user_id, collection_id=collection_id)
    rows = await collections_repo.list_collection_snippets(
        session, user_id=user_id, collection_id=collection_id
    )
    items = [
        CollectionSnippetItem(
            id=s.id,
            user_id=s.user_id,
            title=s.title,
            content=s.content,
            is_favorite=s.is_favorite,
            position=position,
            created_at=as_utc(s.created_at),
        )
        for s, position in rows
    ]
    return CollectionSnippetsOut(collection=collection, snippets=items)
