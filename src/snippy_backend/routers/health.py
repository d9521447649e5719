from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from snippy_backend.db import get_session, ping
from snippy_backend.error_handlers import error_response
from snippy_backend.schemas_common import ApiResponse, HealthData, ok

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=ApiResponse[HealthData])
async def health(session: AsyncSession = Depends(get_session)) -> ApiResponse[HealthData] | JSONResponse:
    try:
        await ping(session)
    except (SQLAlchemyError, OSError):
        logger.warning("health check: database unreachable", exc_info=True)
        return error_response(503, "database unreachable")
    return ok(HealthData(), "Service is healthy")
