from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.models import (
    Collection,
    CollectionPosition,
    CollectionSnippetPosition,
    Snippet,
    SnippetCollection,
)
from snippy_backend.update_sets import COLLECTION_COLUMNS, UpdateSet, build_owned_update


async def get_collection(session: AsyncSession, *, collection_id: str) -> Collection | None:
    """Any owner; callers decide between not-found and forbidden."""

    stmt = select(Collection).where(Collection.id == collection_id)
    return (await session.exec(stmt)).first()


async def get_owned_collection(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> Collection | None:
    stmt = (
        select(Collection)
        .where(Collection.user_id == user_id)
        .where(Collection.id == collection_id)
    )
    return (await session.exec(stmt)).first()


async def owned_collection_ids(
    session: AsyncSession, *, user_id: str, collection_ids: list[str]
) -> set[str]:
    if not collection_ids:
        return set()
    stmt = (
        select(Collection.id)
        .where(Collection.user_id == user_id)
        .where(col(Collection.id).in_(collection_ids))
    )
    return set((await session.exec(stmt)).all())


def _snippet_counts_subquery() -> Any:
    return (
        select(
            SnippetCollection.collection_id,
            func.count().label("snippet_count"),
        )
        .group_by(col(SnippetCollection.collection_id))
        .subquery()
    )


def _stats_select(user_id: str) -> Any:
    counts = _snippet_counts_subquery()
    return (
        select(
            Collection,
            func.coalesce(counts.c.snippet_count, 0),
            CollectionPosition.position,
        )
        .outerjoin(counts, counts.c.collection_id == Collection.id)
        .outerjoin(
            CollectionPosition,
            sa.and_(
                col(CollectionPosition.collection_id) == col(Collection.id),
                col(CollectionPosition.user_id) == user_id,
            ),
        )
        .where(Collection.user_id == user_id)
    )


async def list_collections_with_stats(
    session: AsyncSession, *, user_id: str
) -> list[tuple[Collection, int, int | None]]:
    """Owner's collections with snippet counts; ordered by position, unordered ones last."""

    stmt = _stats_select(user_id).order_by(
        col(CollectionPosition.position).is_(None),
        col(CollectionPosition.position).asc(),
        col(Collection.created_at).desc(),
    )
    rows = (await session.exec(stmt)).all()
    return [(c, int(count), position) for c, count, position in rows]


async def get_collection_with_stats(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> tuple[Collection, int, int | None] | None:
    stmt = _stats_select(user_id).where(Collection.id == collection_id)
    row = (await session.exec(stmt)).first()
    if row is None:
        return None
    c, count, position = row
    return c, int(count), position


async def list_collection_snippets(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> list[tuple[Snippet, int]]:
    position = func.coalesce(CollectionSnippetPosition.position, 0)
    stmt = (
        select(Snippet, position)
        .join(SnippetCollection, col(SnippetCollection.snippet_id) == col(Snippet.id))
        .outerjoin(
            CollectionSnippetPosition,
            sa.and_(
                col(CollectionSnippetPosition.snippet_id) == col(Snippet.id),
                col(CollectionSnippetPosition.collection_id) == collection_id,
                col(CollectionSnippetPosition.user_id) == user_id,
            ),
        )
        .where(SnippetCollection.collection_id == collection_id)
        .where(Snippet.user_id == user_id)
        .order_by(position.asc(), col(Snippet.created_at).desc())
    )
    rows = (await session.exec(stmt)).all()
    return [(s, int(p)) for s, p in rows]


async def member_snippet_ids(
    session: AsyncSession, *, user_id: str, collection_id: str, snippet_ids: list[str]
) -> set[str]:
    """Subset of ``snippet_ids`` owned by ``user_id`` and filed in the collection."""

    if not snippet_ids:
        return set()
    stmt = (
        select(Snippet.id)
        .join(SnippetCollection, col(SnippetCollection.snippet_id) == col(Snippet.id))
        .where(SnippetCollection.collection_id == collection_id)
        .where(Snippet.user_id == user_id)
        .where(col(Snippet.id).in_(snippet_ids))
    )
    return set((await session.exec(stmt)).all())


async def update_collection(
    session: AsyncSession, *, user_id: str, collection_id: str, update_set: UpdateSet
) -> Collection | None:
    stmt = build_owned_update(
        Collection,
        COLLECTION_COLUMNS,
        row_id=collection_id,
        user_id=user_id,
        update_set=update_set,
    ).execution_options(synchronize_session=False)
    await session.exec(stmt)  # type: ignore[call-overload]

    reread = (
        select(Collection)
        .where(Collection.user_id == user_id)
        .where(Collection.id == collection_id)
        .execution_options(populate_existing=True)
    )
    return (await session.exec(reread)).first()


async def delete_collection_row(
    session: AsyncSession, *, user_id: str, collection_id: str
) -> int:
    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(Collection)
        .where(col(Collection.id) == collection_id)
        .where(col(Collection.user_id) == user_id)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
