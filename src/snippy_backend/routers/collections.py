from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.db import get_session
from snippy_backend.deps import get_current_user_id
from snippy_backend.schemas_collections import (
    CollectionCreateRequest,
    CollectionOut,
    CollectionPatchRequest,
    CollectionPositionsRequest,
    CollectionSnippetsOut,
    PositionsUpdated,
    SnippetPositionsRequest,
)
from snippy_backend.schemas_common import ApiResponse, IdData, ok
from snippy_backend.services import collections_service, positions_service

router = APIRouter(prefix="/collections", tags=["collections"])


@router.get("", response_model=ApiResponse[list[CollectionOut]])
async def list_collections(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[CollectionOut]]:
    items = await collections_service.list_collections(session, user_id=user_id)
    return ok(items, "Collections retrieved successfully")


@router.post(
    "", response_model=ApiResponse[CollectionOut], status_code=status.HTTP_201_CREATED
)
async def create_collection(
    payload: CollectionCreateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[CollectionOut]:
    out = await collections_service.create_collection(session, user_id=user_id, payload=payload)
    return ok(out, "Collection created successfully")


@router.put("/positions", response_model=ApiResponse[PositionsUpdated])
async def reorder_collections(
    payload: CollectionPositionsRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PositionsUpdated]:
    out = await positions_service.reorder_collections(session, user_id=user_id, payload=payload)
    return ok(out, "Collection positions updated successfully")


@router.get("/{collection_id}", response_model=ApiResponse[CollectionOut])
async def get_collection(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[CollectionOut]:
    out = await collections_service.get_collection(
        session, user_id=user_id, collection_id=collection_id
    )
    return ok(out, "Collection retrieved successfully")


@router.patch("/{collection_id}", response_model=ApiResponse[CollectionOut])
async def update_collection(
    collection_id: str,
    payload: CollectionPatchRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[CollectionOut]:
    out = await collections_service.update_collection(
        session, user_id=user_id, collection_id=collection_id, payload=payload
    )
    return ok(out, "Collection updated successfully")


@router.delete("/{collection_id}", response_model=ApiResponse[IdData])
async def delete_collection(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[IdData]:
    out = await collections_service.delete_collection(
        session, user_id=user_id, collection_id=collection_id
    )
    return ok(out, "Collection deleted successfully")


@router.get("/{collection_id}/snippets", response_model=ApiResponse[CollectionSnippetsOut])
async def list_collection_snippets(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[CollectionSnippetsOut]:
    out = await collections_service.list_collection_snippets(
        session, user_id=user_id, collection_id=collection_id
    )
    return ok(out, "Collection snippets retrieved successfully")


@router.put("/{collection_id}/snippets/positions", response_model=ApiResponse[PositionsUpdated])
async def reorder_collection_snippets(
    collection_id: str,
    payload: SnippetPositionsRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[PositionsUpdated]:
    out = await positions_service.reorder_collection_snippets(
        session, user_id=user_id, collection_id=collection_id, payload=payload
    )
    return ok(out, "Snippet positions updated successfully")
