from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.db import run_in_transaction
from snippy_backend.models import Snippet, as_utc, utc_now
from snippy_backend.repositories import (
    collections_repo,
    positions_repo,
    snippets_repo,
    tags_repo,
)
from snippy_backend.schemas_common import IdData
from snippy_backend.schemas_snippets import (
    SnippetCreateRequest,
    SnippetOut,
    SnippetPatchRequest,
    SnippetTagsAssigned,
    SnippetTagsRequest,
)
from snippy_backend.services.ownership import dedupe_ids, require_known_ids, require_owner
from snippy_backend.update_sets import (
    SNIPPET_COLUMNS,
    SNIPPET_LIST_FIELDS,
    UpdateSet,
    require_fields,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="snippet not found")


def to_snippet_out(
    s: Snippet,
    *,
    collection_ids: list[str],
    tag_ids: list[str],
    tag_names: list[str] | None = None,
) -> SnippetOut:
    return SnippetOut(
        id=s.id,
        user_id=s.user_id,
        title=s.title,
        content=s.content,
        collection_ids=collection_ids,
        tag_ids=tag_ids,
        tag_names=tag_names or [],
        is_public=s.is_public,
        is_favorite=s.is_favorite,
        forked_from=s.forked_from,
        fork_count=s.fork_count,
        created_at=as_utc(s.created_at),
        updated_at=as_utc(s.updated_at),
    )


async def hydrate(
    session: AsyncSession, snippets: Sequence[Snippet], *, with_tag_names: bool = False
) -> list[SnippetOut]:
    ids = [s.id for s in snippets]
    collection_ids, tag_ids = await snippets_repo.load_memberships(session, snippet_ids=ids)

    names: dict[str, str] = {}
    if with_tag_names:
        all_tag_ids = sorted({t for tids in tag_ids.values() for t in tids})
        names = await snippets_repo.tag_names_by_id(session, tag_ids=all_tag_ids)

    out: list[SnippetOut] = []
    for s in snippets:
        tids = tag_ids[s.id]
        out.append(
            to_snippet_out(
                s,
                collection_ids=collection_ids[s.id],
                tag_ids=tids,
                # tag_ids order; ids whose tag row is gone are skipped.
                tag_names=[names[t] for t in tids if t in names],
            )
        )
    return out


async def _hydrate_one(session: AsyncSession, s: Snippet) -> SnippetOut:
    return (await hydrate(session, [s], with_tag_names=True))[0]


async def _validated_collection_ids(
    session: AsyncSession, *, user_id: str, collection_ids: list[str]
) -> list[str]:
    ids = dedupe_ids(collection_ids)
    known = await collections_repo.owned_collection_ids(
        session, user_id=user_id, collection_ids=ids
    )
    require_known_ids(ids, known, label="collection_id")
    return ids


async def _validated_tag_ids(
    session: AsyncSession, *, user_id: str, tag_ids: list[str]
) -> list[str]:
    ids = dedupe_ids(tag_ids)
    known = await tags_repo.owned_tag_ids(session, user_id=user_id, tag_ids=ids)
    require_known_ids(ids, known, label="tag_id")
    return ids


async def list_snippets(
    session: AsyncSession,
    *,
    user_id: str,
    collection_id: str | None,
    search: str | None,
    public_only: bool = False,
    limit: int,
    offset: int,
) -> list[SnippetOut]:
    rows = await snippets_repo.list_snippets(
        session,
        user_id=user_id,
        collection_id=collection_id,
        search=(search or "").strip() or None,
        public_only=public_only,
        limit=limit,
        offset=offset,
    )
    return await hydrate(session, rows)


async def get_snippet(session: AsyncSession, *, user_id: str, snippet_id: str) -> SnippetOut:
    """Owner reads any of their snippets; anyone else only sees public ones."""

    s = await snippets_repo.get_snippet(session, snippet_id=snippet_id)
    if s is None or (s.user_id != user_id and not s.is_public):
        raise _not_found()
    return await _hydrate_one(session, s)


async def create_snippet(
    session: AsyncSession, *, user_id: str, payload: SnippetCreateRequest
) -> SnippetOut:
    async def _apply(tx: AsyncSession) -> SnippetOut:
        collection_ids = await _validated_collection_ids(
            tx, user_id=user_id, collection_ids=payload.collection_ids
        )
        tag_ids = await _validated_tag_ids(tx, user_id=user_id, tag_ids=payload.tag_ids)

        now = utc_now()
        s = Snippet(
            id=_new_id(),
            user_id=user_id,
            title=payload.title,
            content=payload.content,
            is_public=payload.is_public,
            is_favorite=payload.is_favorite,
            forked_from=None,
            fork_count=0,
            created_at=now,
            updated_at=now,
        )
        tx.add(s)
        await tx.flush()
        await snippets_repo.replace_collection_memberships(
            tx, snippet_id=s.id, collection_ids=collection_ids
        )
        await snippets_repo.replace_tag_memberships(tx, snippet_id=s.id, tag_ids=tag_ids)
        return await _hydrate_one(tx, s)

    return await run_in_transaction(session, _apply)


async def update_snippet(
    session: AsyncSession, *, user_id: str, snippet_id: str, payload: SnippetPatchRequest
) -> SnippetOut:
    update_set = UpdateSet.from_payload(
        payload, allowed=set(SNIPPET_COLUMNS) | SNIPPET_LIST_FIELDS
    )

    async def _apply(tx: AsyncSession) -> SnippetOut:
        existing = await snippets_repo.get_snippet(tx, snippet_id=snippet_id)
        require_owner(existing, user_id=user_id, not_found="snippet not found")
        require_fields(update_set)

        collection_ids: list[str] | None = None
        tag_ids: list[str] | None = None
        if "collection_ids" in update_set:
            collection_ids = await _validated_collection_ids(
                tx, user_id=user_id, collection_ids=update_set["collection_ids"]
            )
        if "tag_ids" in update_set:
            tag_ids = await _validated_tag_ids(tx, user_id=user_id, tag_ids=update_set["tag_ids"])

        s = await snippets_repo.update_snippet(
            tx, user_id=user_id, snippet_id=snippet_id, update_set=update_set
        )
        if s is None:
            raise _not_found()

        if collection_ids is not None:
            await snippets_repo.replace_collection_memberships(
                tx, snippet_id=snippet_id, collection_ids=collection_ids
            )
            await positions_repo.delete_snippet_positions_outside(
                tx, snippet_id=snippet_id, keep_collection_ids=collection_ids
            )
        if tag_ids is not None:
            await snippets_repo.replace_tag_memberships(tx, snippet_id=snippet_id, tag_ids=tag_ids)
        return await _hydrate_one(tx, s)

    return await run_in_transaction(session, _apply)


async def delete_snippet(session: AsyncSession, *, user_id: str, snippet_id: str) -> IdData:
    async def _apply(tx: AsyncSession) -> IdData:
        owned = await snippets_repo.get_owned_snippet(tx, user_id=user_id, snippet_id=snippet_id)
        if owned is None:
            raise _not_found()

        await snippets_repo.delete_memberships(tx, snippet_id=snippet_id)
        await positions_repo.delete_positions_for_snippet(tx, snippet_id=snippet_id)
        await snippets_repo.delete_snippet_row(tx, user_id=user_id, snippet_id=snippet_id)
        logger.info("snippet deleted user_id=%s snippet_id=%s", user_id, snippet_id)
        return IdData(id=snippet_id)

    return await run_in_transaction(session, _apply)


async def fork_snippet(session: AsyncSession, *, user_id: str, source_id: str) -> SnippetOut:
    """Copy a public snippet into the caller's library and bump the source's fork_count."""

    async def _apply(tx: AsyncSession) -> SnippetOut:
        source = await snippets_repo.get_public_snippet(tx, snippet_id=source_id)
        if source is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="public snippet not found"
            )

        # Guarded on is_public so a source made private mid-flight is not counted.
        if await snippets_repo.increment_fork_count(tx, snippet_id=source_id) != 1:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="public snippet not found"
            )

        _, source_tags = await snippets_repo.load_memberships(tx, snippet_ids=[source_id])

        now = utc_now()
        fork = Snippet(
            id=_new_id(),
            user_id=user_id,
            title=source.title,
            content=source.content,
            is_public=False,
            is_favorite=False,
            forked_from=source_id,
            fork_count=0,
            created_at=now,
            updated_at=now,
        )
        tx.add(fork)
        await tx.flush()
        # Collections belong to the source owner and are not carried over.
        await snippets_repo.replace_tag_memberships(
            tx, snippet_id=fork.id, tag_ids=source_tags[source_id]
        )
        logger.info(
            "snippet forked user_id=%s source_id=%s fork_id=%s", user_id, source_id, fork.id
        )
        return await _hydrate_one(tx, fork)

    return await run_in_transaction(session, _apply)


async def assign_tags(
    session: AsyncSession, *, user_id: str, snippet_id: str, payload: SnippetTagsRequest
) -> SnippetTagsAssigned:
    """Replace the snippet's tag list; an empty list clears it."""

    async def _apply(tx: AsyncSession) -> SnippetTagsAssigned:
        existing = await snippets_repo.get_snippet(tx, snippet_id=snippet_id)
        require_owner(existing, user_id=user_id, not_found="snippet not found")
        tag_ids = await _validated_tag_ids(tx, user_id=user_id, tag_ids=payload.tag_ids)

        # Empty update set still bumps updated_at.
        await snippets_repo.update_snippet(
            tx, user_id=user_id, snippet_id=snippet_id, update_set=UpdateSet({})
        )
        await snippets_repo.replace_tag_memberships(tx, snippet_id=snippet_id, tag_ids=tag_ids)
        return SnippetTagsAssigned(snippet_id=snippet_id, tag_count=len(tag_ids))

    return await run_in_transaction(session, _apply)


async def list_public_snippets(
    session: AsyncSession,
    *,
    search: str | None,
    user_id: str | None,
    shuffle: bool,
    limit: int,
    offset: int,
) -> list[SnippetOut]:
    rows = await snippets_repo.list_public_snippets(
        session,
        search=(search or "").strip() or None,
        user_id=(user_id or "").strip() or None,
        shuffle=shuffle,
        limit=limit,
        offset=offset,
    )
    return await hydrate(session, rows, with_tag_names=True)


async def get_public_snippet(session: AsyncSession, *, snippet_id: str) -> SnippetOut:
    s = await snippets_repo.get_public_snippet(session, snippet_id=snippet_id)
    if s is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="public snippet not found"
        )
    return await _hydrate_one(session, s)
