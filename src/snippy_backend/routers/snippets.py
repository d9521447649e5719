from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db import get_session
from snippy_backend.deps import get_current_user_id
from snippy_backend.schemas_common import ApiResponse, IdData, ok
from snippy_backend.schemas_snippets import (
    ForkRequest,
    SnippetCreateRequest,
    SnippetOut,
    SnippetPatchRequest,
    SnippetTagsAssigned,
    SnippetTagsRequest,
)
from snippy_backend.services import snippets_service

router = APIRouter(prefix="/snippets", tags=["snippets"])


@router.get("", response_model=ApiResponse[list[SnippetOut]])
async def list_snippets(
    collection_id: Annotated[str | None, Query(max_length=36)] = None,
    search: Annotated[str | None, Query(max_length=200)] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SnippetOut]]:
    items = await snippets_service.list_snippets(
        session,
        user_id=user_id,
        collection_id=collection_id,
        search=search,
        limit=settings.clamp_limit(limit),
        offset=offset,
    )
    return ok(items, "Snippets retrieved successfully")


@router.get("/my-public", response_model=ApiResponse[list[SnippetOut]])
async def list_my_public_snippets(
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SnippetOut]]:
    items = await snippets_service.list_snippets(
        session,
        user_id=user_id,
        collection_id=None,
        search=None,
        public_only=True,
        limit=settings.clamp_limit(limit),
        offset=offset,
    )
    return ok(items, "Public snippets retrieved successfully")


@router.post("", response_model=ApiResponse[SnippetOut], status_code=status.HTTP_201_CREATED)
async def create_snippet(
    payload: SnippetCreateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.create_snippet(session, user_id=user_id, payload=payload)
    return ok(out, "Snippet created successfully")


@router.post("/fork", response_model=ApiResponse[SnippetOut], status_code=status.HTTP_201_CREATED)
async def fork_snippet_by_body(
    payload: ForkRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.fork_snippet(session, user_id=user_id, source_id=payload.id)
    return ok(out, "Snippet forked successfully")


@router.get("/{snippet_id}", response_model=ApiResponse[SnippetOut])
async def get_snippet(
    snippet_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.get_snippet(session, user_id=user_id, snippet_id=snippet_id)
    return ok(out, "Snippet retrieved successfully")


@router.patch("/{snippet_id}", response_model=ApiResponse[SnippetOut])
async def update_snippet(
    snippet_id: str,
    payload: SnippetPatchRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.update_snippet(
        session, user_id=user_id, snippet_id=snippet_id, payload=payload
    )
    return ok(out, "Snippet updated successfully")


@router.delete("/{snippet_id}", response_model=ApiResponse[IdData])
async def delete_snippet(
    snippet_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[IdData]:
    out = await snippets_service.delete_snippet(session, user_id=user_id, snippet_id=snippet_id)
    return ok(out, "Snippet deleted successfully")


@router.post(
    "/{snippet_id}/fork",
    response_model=ApiResponse[SnippetOut],
    status_code=status.HTTP_201_CREATED,
)
async def fork_snippet(
    snippet_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.fork_snippet(session, user_id=user_id, source_id=snippet_id)
    return ok(out, "Snippet forked successfully")


@router.put("/{snippet_id}/tags", response_model=ApiResponse[SnippetTagsAssigned])
async def assign_snippet_tags(
    snippet_id: str,
    payload: SnippetTagsRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetTagsAssigned]:
    out = await snippets_service.assign_tags(
        session, user_id=user_id, snippet_id=snippet_id, payload=payload
    )
    return ok(out, "Tags assigned successfully")
