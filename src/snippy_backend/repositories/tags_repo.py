from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.models import Tag
from snippy_backend.update_sets import TAG_COLUMNS, UpdateSet, build_owned_update


async def get_tag(session: AsyncSession, *, tag_id: str) -> Tag | None:
    return (await session.exec(select(Tag).where(Tag.id == tag_id))).first()


async def get_owned_tag(session: AsyncSession, *, user_id: str, tag_id: str) -> Tag | None:
    stmt = select(Tag).where(Tag.user_id == user_id).where(Tag.id == tag_id)
    return (await session.exec(stmt)).first()


async def list_tags(session: AsyncSession, *, user_id: str) -> list[Tag]:
    stmt = select(Tag).where(Tag.user_id == user_id).order_by(col(Tag.name).asc())
    return list((await session.exec(stmt)).all())


async def owned_tag_ids(session: AsyncSession, *, user_id: str, tag_ids: list[str]) -> set[str]:
    if not tag_ids:
        return set()
    stmt = select(Tag.id).where(Tag.user_id == user_id).where(col(Tag.id).in_(tag_ids))
    return set((await session.exec(stmt)).all())


async def update_tag(
    session: AsyncSession, *, user_id: str, tag_id: str, update_set: UpdateSet
) -> Tag | None:
    stmt = build_owned_update(
        Tag, TAG_COLUMNS, row_id=tag_id, user_id=user_id, update_set=update_set
    ).execution_options(synchronize_session=False)
    await session.exec(stmt)  # type: ignore[call-overload]

    reread = (
        select(Tag)
        .where(Tag.user_id == user_id)
        .where(Tag.id == tag_id)
        .execution_options(populate_existing=True)
    )
    return (await session.exec(reread)).first()


async def delete_tag_row(session: AsyncSession, *, user_id: str, tag_id: str) -> int:
    result = await session.exec(  # type: ignore[call-overload]
        sa.delete(Tag)
        .where(col(Tag.id) == tag_id)
        .where(col(Tag.user_id) == user_id)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
