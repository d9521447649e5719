from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.config import settings
from snippy_backend.db import get_session
from snippy_backend.schemas_common import ApiResponse, ok
from snippy_backend.schemas_snippets import SnippetOut
from snippy_backend.services import snippets_service

# No auth dependency: these endpoints serve anonymous visitors.
router = APIRouter(prefix="/public", tags=["public"])


@router.get("/snippets", response_model=ApiResponse[list[SnippetOut]])
async def list_public_snippets(
    search: Annotated[str | None, Query(max_length=200)] = None,
    user_id: Annotated[str | None, Query(max_length=128)] = None,
    shuffle: bool = False,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SnippetOut]]:
    items = await snippets_service.list_public_snippets(
        session,
        search=search,
        user_id=user_id,
        shuffle=shuffle,
        limit=settings.clamp_limit(limit),
        offset=offset,
    )
    return ok(items, "Public snippets retrieved successfully")


@router.get("/snippets/{snippet_id}", response_model=ApiResponse[SnippetOut])
async def get_public_snippet(
    snippet_id: str,
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[SnippetOut]:
    out = await snippets_service.get_public_snippet(session, snippet_id=snippet_id)
    return ok(out, "Public snippet retrieved successfully")
