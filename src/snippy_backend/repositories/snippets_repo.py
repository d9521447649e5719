from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.models import Snippet, SnippetCollection, SnippetTag, Tag
from snippy_backend.update_sets import SNIPPET_COLUMNS, UpdateSet, build_owned_update


async def get_snippet(session: AsyncSession, *, snippet_id: str) -> Snippet | None:
    stmt = select(Snippet).where(Snippet.id == snippet_id)
    return (await session.exec(stmt)).first()


async def get_owned_snippet(
    session: AsyncSession, *, user_id: str, snippet_id: str
) -> Snippet | None:
    stmt = select(Snippet).where(Snippet.user_id == user_id).where(Snippet.id == snippet_id)
    return (await session.exec(stmt)).first()


async def get_public_snippet(session: AsyncSession, *, snippet_id: str) -> Snippet | None:
    stmt = select(Snippet).where(Snippet.id == snippet_id).where(col(Snippet.is_public).is_(True))
    return (await session.exec(stmt)).first()


def _search_clause(search: str) -> sa.ColumnElement[bool]:
    return sa.or_(
        col(Snippet.title).icontains(search, autoescape=True),
        col(Snippet.content).icontains(search, autoescape=True),
    )


async def list_snippets(
    session: AsyncSession,
    *,
    user_id: str,
    collection_id: str | None = None,
    search: str | None = None,
    public_only: bool = False,
    limit: int,
    offset: int,
) -> list[Snippet]:
    stmt = select(Snippet).where(Snippet.user_id == user_id)
    if collection_id is not None:
        stmt = stmt.join(
            SnippetCollection, col(SnippetCollection.snippet_id) == col(Snippet.id)
        ).where(SnippetCollection.collection_id == collection_id)
    if search:
        stmt = stmt.where(_search_clause(search))
    if public_only:
        stmt = stmt.where(col(Snippet.is_public).is_(True))
    stmt = stmt.order_by(col(Snippet.created_at).desc()).limit(limit).offset(offset)
    return list((await session.exec(stmt)).all())


async def list_public_snippets(
    session: AsyncSession,
    *,
    search: str | None = None,
    user_id: str | None = None,
    shuffle: bool = False,
    limit: int,
    offset: int,
) -> list[Snippet]:
    stmt = select(Snippet).where(col(Snippet.is_public).is_(True))
    if user_id:
        stmt = stmt.where(Snippet.user_id == user_id)
    if search:
        stmt = stmt.where(_search_clause(search))
    if shuffle:
        stmt = stmt.order_by(func.random())
    else:
        stmt = stmt.order_by(col(Snippet.fork_count).desc(), col(Snippet.created_at).desc())
    stmt = stmt.limit(limit).offset(offset)
    return list((await session.exec(stmt)).all())


async def load_memberships(
    session: AsyncSession, *, snippet_ids: Sequence[str]
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Return (collection_ids, tag_ids) per snippet, each list in stored order."""

    collection_ids: dict[str, list[str]] = {sid: [] for sid in snippet_ids}
    tag_ids: dict[str, list[str]] = {sid: [] for sid in snippet_ids}
    if not snippet_ids:
        return collection_ids, tag_ids

    coll_rows = (
        await session.exec(
            select(SnippetCollection)
            .where(col(SnippetCollection.snippet_id).in_(snippet_ids))
            .order_by(col(SnippetCollection.snippet_id), col(SnippetCollection.ordinal))
        )
    ).all()
    for r in coll_rows:
        collection_ids[r.snippet_id].append(r.collection_id)

    tag_rows = (
        await session.exec(
            select(SnippetTag)
            .where(col(SnippetTag.snippet_id).in_(snippet_ids))
            .order_by(col(SnippetTag.snippet_id), col(SnippetTag.ordinal))
        )
    ).all()
    for r in tag_rows:
        tag_ids[r.snippet_id].append(r.tag_id)

    return collection_ids, tag_ids


async def tag_names_by_id(session: AsyncSession, *, tag_ids: Sequence[str]) -> dict[str, str]:
    if not tag_ids:
        return {}
    stmt = select(Tag.id, Tag.name).where(col(Tag.id).in_(list(tag_ids)))
    return {tag_id: name for tag_id, name in (await session.exec(stmt)).all()}


async def replace_collection_memberships(
    session: AsyncSession, *, snippet_id: str, collection_ids: Sequence[str]
) -> None:
    await session.exec(  # type: ignore[call-overload]
        sa.delete(SnippetCollection).where(col(SnippetCollection.snippet_id) == snippet_id)
    )
    for ordinal, collection_id in enumerate(collection_ids):
        session.add(
            SnippetCollection(snippet_id=snippet_id, collection_id=collection_id, ordinal=ordinal)
        )
    await session.flush()


async def replace_tag_memberships(
    session: AsyncSession, *, snippet_id: str, tag_ids: Sequence[str]
) -> None:
    await session.exec(  # type: ignore[call-overload]
        sa.delete(SnippetTag).where(col(SnippetTag.snippet_id) == snippet_id)
    )
    for ordinal, tag_id in enumerate(tag_ids):
        session.add(SnippetTag(snippet_id=snippet_id, tag_id=tag_id, ordinal=ordinal))
    await session.flush()


async def strip_collection(session: AsyncSession, *, collection_id: str) -> int:
    """Remove ``collection_id`` from every snippet's membership list."""

    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(SnippetCollection).where(col(SnippetCollection.collection_id) == collection_id)
    )
    return int(result.rowcount or 0)


async def strip_tag(session: AsyncSession, *, tag_id: str) -> int:
    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(SnippetTag).where(col(SnippetTag.tag_id) == tag_id)
    )
    return int(result.rowcount or 0)


async def delete_memberships(session: AsyncSession, *, snippet_id: str) -> None:
    for model in (SnippetCollection, SnippetTag):
        await session.exec(  # type: ignore[call-overload]
            sa.delete(model).where(col(model.snippet_id) == snippet_id)
        )


async def update_snippet(
    session: AsyncSession, *, user_id: str, snippet_id: str, update_set: UpdateSet
) -> Snippet | None:
    stmt = build_owned_update(
        Snippet,
        SNIPPET_COLUMNS,
        row_id=snippet_id,
        user_id=user_id,
        update_set=update_set,
    ).execution_options(synchronize_session=False)
    await session.exec(stmt)  # type: ignore[call-overload]

    reread = (
        select(Snippet)
        .where(Snippet.user_id == user_id)
        .where(Snippet.id == snippet_id)
        .execution_options(populate_existing=True)
    )
    return (await session.exec(reread)).first()


async def increment_fork_count(session: AsyncSession, *, snippet_id: str) -> int:
    # Single atomic statement; never read-modify-write.
    result = await session.exec(  # type: ignore[call-overload]
        sa.update(Snippet)
        .where(col(Snippet.id) == snippet_id)
        .where(col(Snippet.is_public).is_(True))
        .values(fork_count=col(Snippet.fork_count) + 1)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def delete_snippet_row(session: AsyncSession, *, user_id: str, snippet_id: str) -> int:
    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(Snippet)
        .where(col(Snippet.id) == snippet_id)
        .where(col(Snippet.user_id) == user_id)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
