from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.db import get_session
from snippy_backend.deps import get_current_user_id
from snippy_backend.schemas_common import ApiResponse, ok
from snippy_backend.schemas_tags import TagCreateRequest, TagDeleted, TagOut, TagPatchRequest
from snippy_backend.services import tags_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=ApiResponse[list[TagOut]])
async def list_tags(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[TagOut]]:
    return ok(await tags_service.list_tags(session, user_id=user_id), "Tags retrieved successfully")


@router.post("", response_model=ApiResponse[TagOut], status_code=status.HTTP_201_CREATED)
async def create_tag(
    payload: TagCreateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[TagOut]:
    out = await tags_service.create_tag(session, user_id=user_id, payload=payload)
    return ok(out, "Tag created successfully")


@router.patch("/{tag_id}", response_model=ApiResponse[TagOut])
async def update_tag(
    tag_id: str,
    payload: TagPatchRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[TagOut]:
    out = await tags_service.update_tag(session, user_id=user_id, tag_id=tag_id, payload=payload)
    return ok(out, "Tag updated successfully")


@router.delete("/{tag_id}", response_model=ApiResponse[TagDeleted])
async def delete_tag(
    tag_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[TagDeleted]:
    out = await tags_service.delete_tag(session, user_id=user_id, tag_id=tag_id)
    return ok(out, "Tag deleted successfully")
