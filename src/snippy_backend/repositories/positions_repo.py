from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlmodel import SQLModel, col
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db_urls import is_postgres_url, is_sqlite_url
from snippy_backend.models import CollectionPosition, CollectionSnippetPosition, utc_now


def _table(model: type[SQLModel]) -> sa.Table:
    return SQLModel.metadata.tables[str(model.__tablename__)]


async def _upsert_position(
    session: AsyncSession,
    *,
    model: type[SQLModel],
    key: dict[str, str],
    position: int,
) -> None:
    table = _table(model)
    now = utc_now()
    values: dict[str, Any] = {**key, "position": int(position), "updated_at": now}
    index_elements = list(key)

    if is_sqlite_url(settings.database_url):
        from sqlalchemy.dialects.sqlite import insert as dialect_insert

        stmt = dialect_insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={"position": stmt.excluded.position, "updated_at": now},
        )
        await session.exec(stmt)  # type: ignore[call-overload]
    elif is_postgres_url(settings.database_url):
        from sqlalchemy.dialects.postgresql import insert as dialect_insert

        stmt = dialect_insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={"position": stmt.excluded.position, "updated_at": now},
        )
        await session.exec(stmt)  # type: ignore[call-overload]
    else:
        # Other databases: select-then-write inside the caller's transaction.
        where = [table.c[k] == v for k, v in key.items()]
        existing = (await session.exec(sa.select(table.c.id).where(*where))).first()  # type: ignore[call-overload]
        if existing is None:
            await session.exec(sa.insert(table).values(**values))  # type: ignore[call-overload]
        else:
            await session.exec(  # type: ignore[call-overload]
                sa.update(table).where(*where).values(position=int(position), updated_at=now)
            )


async def upsert_collection_position(
    session: AsyncSession, *, user_id: str, collection_id: str, position: int
) -> None:
    await _upsert_position(
        session,
        model=CollectionPosition,
        key={"user_id": user_id, "collection_id": collection_id},
        position=position,
    )


async def upsert_snippet_position(
    session: AsyncSession,
    *,
    user_id: str,
    collection_id: str,
    snippet_id: str,
    position: int,
) -> None:
    await _upsert_position(
        session,
        model=CollectionSnippetPosition,
        key={"user_id": user_id, "collection_id": collection_id, "snippet_id": snippet_id},
        position=position,
    )


async def delete_positions_for_collection(session: AsyncSession, *, collection_id: str) -> int:
    """Drop the collection's own position row and every snippet position inside it."""

    deleted = 0
    for model in (CollectionPosition, CollectionSnippetPosition):
        result = await session.exec(  # type: ignore[call-overload]
            sa.delete(model).where(col(model.collection_id) == collection_id)
        )
        deleted += int(result.rowcount or 0)
    return deleted


async def delete_positions_for_snippet(session: AsyncSession, *, snippet_id: str) -> int:
    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(CollectionSnippetPosition).where(
            col(CollectionSnippetPosition.snippet_id) == snippet_id
        )
    )
    return int(result.rowcount or 0)


async def delete_snippet_positions_outside(
    session: AsyncSession, *, snippet_id: str, keep_collection_ids: list[str]
) -> None:
    # Positions only make sense while the snippet is a member of the collection.
    stmt = sa.delete(CollectionSnippetPosition).where(
        col(CollectionSnippetPosition.snippet_id) == snippet_id
    )
    if keep_collection_ids:
        stmt = stmt.where(col(CollectionSnippetPosition.collection_id).not_in(keep_collection_ids))
    await session.exec(stmt)  # type: ignore[call-overload]
