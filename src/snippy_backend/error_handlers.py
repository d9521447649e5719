"""Uniform error envelope.

Every failure leaves the API as ``{success: false, message: <code>, error: <detail>}``
so clients branch on ``message`` instead of parsing FastAPI's default ``{"detail": ...}``.
"""

from __future__ import annotations

import logging
from typing import cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from snippy_backend.schemas_common import ApiResponse

logger = logging.getLogger(__name__)


def map_http_status_to_error(status_code: int) -> str:
    mapping: dict[int, str] = {
        400: "invalid_request",
        401: "unauthenticated",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "invalid_request",
        500: "internal_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, f"http_{status_code}")


def error_response(
    status_code: int, detail: str, *, headers: dict[str, str] | None = None
) -> JSONResponse:
    payload = ApiResponse[None](
        success=False,
        message=map_http_status_to_error(status_code),
        error=detail,
    )
    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(mode="json"),
        headers=headers,
    )


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    headers = getattr(http_exc, "headers", None)
    return error_response(http_exc.status_code, str(http_exc.detail), headers=headers)


def _format_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    # Drop the "body"/"query" prefix; clients care about the field.
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    msg = str(first.get("msg", "invalid value"))
    if not loc:
        return msg
    return f"{'.'.join(loc)}: {msg}"


async def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return error_response(400, _format_validation_error(validation_exc))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "unhandled exception request_id=%s method=%s path=%s",
        request_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return error_response(500, "internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
