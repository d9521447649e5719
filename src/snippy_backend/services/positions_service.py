from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.db import run_in_transaction
from snippy_backend.repositories import collections_repo, positions_repo
from snippy_backend.schemas_collections import (
    CollectionPositionsRequest,
    PositionsUpdated,
    SnippetPositionsRequest,
)

logger = logging.getLogger(__name__)


def validate_batch(entries: list[tuple[str, int]], *, id_label: str) -> None:
    """Reject a reorder batch before any statement is issued."""

    if not entries:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="no positions provided"
        )

    seen_positions: set[int] = set()
    seen_ids: set[str] = set()
    for entry_id, position in entries:
        if position in seen_positions:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"duplicate position {position}",
            )
        if entry_id in seen_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"duplicate {id_label} {entry_id}",
            )
        seen_positions.add(position)
        seen_ids.add(entry_id)


async def reorder_collections(
    session: AsyncSession, *, user_id: str, payload: CollectionPositionsRequest
) -> PositionsUpdated:
    entries = [(p.collection_id, p.position) for p in payload.positions]
    validate_batch(entries, id_label="collection_id")

    async def _apply(tx: AsyncSession) -> PositionsUpdated:
        owned = await collections_repo.owned_collection_ids(
            tx, user_id=user_id, collection_ids=[cid for cid, _ in entries]
        )
        for collection_id, _ in entries:
            if collection_id not in owned:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="collection not found or access denied",
                )

        for collection_id, position in entries:
            await positions_repo.upsert_collection_position(
                tx, user_id=user_id, collection_id=collection_id, position=position
            )
        logger.info("collections reordered user_id=%s count=%d", user_id, len(entries))
        return PositionsUpdated(updated=len(entries))

    return await run_in_transaction(session, _apply)


async def reorder_collection_snippets(
    session: AsyncSession,
    *,
    user_id: str,
    collection_id: str,
    payload: SnippetPositionsRequest,
) -> PositionsUpdated:
    entries = [(p.snippet_id, p.position) for p in payload.positions]
    validate_batch(entries, id_label="snippet_id")

    async def _apply(tx: AsyncSession) -> PositionsUpdated:
        collection = await collections_repo.get_owned_collection(
            tx, user_id=user_id, collection_id=collection_id
        )
        if collection is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="collection not found or access denied",
            )

        members = await collections_repo.member_snippet_ids(
            tx,
            user_id=user_id,
            collection_id=collection_id,
            snippet_ids=[sid for sid, _ in entries],
        )
        for snippet_id, _ in entries:
            if snippet_id not in members:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="snippet not found or not in collection",
                )

        for snippet_id, position in entries:
            await positions_repo.upsert_snippet_position(
                tx,
                user_id=user_id,
                collection_id=collection_id,
                snippet_id=snippet_id,
                position=position,
            )
        logger.info(
            "collection snippets reordered user_id=%s collection_id=%s count=%d",
            user_id,
            collection_id,
            len(entries),
        )
        return PositionsUpdated(updated=len(entries))

    return await run_in_transaction(session, _apply)
