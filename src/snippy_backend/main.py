from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from snippy_backend.config import settings
from snippy_backend.db import dispose_engine
from snippy_backend.error_handlers import register_error_handlers
from snippy_backend.routers import collections, health, public, snippets, tags


class RequestIdMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app: ASGIApp = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id_header: bytes | None = None
        inbound_headers = cast(list[tuple[bytes, bytes]], scope.get("headers") or [])
        for key, value in inbound_headers:
            if key.lower() == b"x-request-id":
                value = value.strip()
                if value:
                    request_id_header = value
                break

        if request_id_header is None:
            request_id = str(uuid.uuid4())
            request_id_header = request_id.encode("ascii")
        else:
            # latin-1 is a 1-1 mapping for bytes -> str.
            request_id = request_id_header.decode("latin-1")

        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = cast(list[tuple[bytes, bytes]], message.get("headers", []))
                headers = [(k, v) for (k, v) in headers if k.lower() != b"x-request-id"]
                headers.append((b"x-request-id", request_id_header))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    yield
    # Ensure sqlite/aiosqlite worker threads don't keep the process alive.
    await dispose_engine()


logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)
for msg in settings.security_warnings():
    logger.warning("SECURITY WARNING: %s", msg)


app = FastAPI(title=settings.app_name, lifespan=_lifespan)
register_error_handlers(app)


@app.middleware("http")
async def request_log_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %d duration_ms=%.1f request_id=%s user_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000.0,
        getattr(request.state, "request_id", None),
        getattr(request.state, "auth_user_id", None),
    )
    return response


origins = settings.cors_origins_list()
if origins == ["*"]:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        # Cookie auth across origins needs an explicit allowlist in CORS_ALLOW_ORIGINS.
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
elif origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Added last so it runs outermost: every response, CORS preflights included, carries the id.
app.add_middleware(RequestIdMiddleware)


app.include_router(health.router, include_in_schema=False)
app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(collections.router, prefix=settings.api_prefix)
app.include_router(snippets.router, prefix=settings.api_prefix)
app.include_router(tags.router, prefix=settings.api_prefix)
app.include_router(public.router, prefix=settings.api_prefix)


@app.api_route(
    f"{settings.api_prefix.rstrip('/')}/{{path:path}}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    include_in_schema=False,
)
async def _api_fallback_not_found(path: str) -> None:  # noqa: ARG001
    # Unknown API paths still answer with the JSON envelope.
    raise HTTPException(status_code=404, detail="Not Found")


def _patch_openapi(schema: dict[str, object]) -> dict[str, object]:
    paths = cast(dict[str, object], schema.get("paths") or {})
    for path_item_obj in paths.values():
        if not isinstance(path_item_obj, dict):
            continue
        path_item = cast(dict[str, object], path_item_obj)
        for method in ("get", "post", "put", "patch", "delete"):
            op_obj = path_item.get(method)
            if not isinstance(op_obj, dict):
                continue
            op = cast(dict[str, object], op_obj)
            responses = cast(dict[str, object], op.setdefault("responses", {}))

            # Document X-Request-Id response header (added by middleware).
            for resp_obj in responses.values():
                if not isinstance(resp_obj, dict):
                    continue
                headers = cast(dict[str, object], resp_obj.setdefault("headers", {}))
                headers.setdefault(
                    "X-Request-Id",
                    {
                        "schema": {"type": "string"},
                        "description": "Echoed or generated request id.",
                    },
                )

            # Validation failures are 400 invalid_request, not FastAPI's 422.
            _ = responses.pop("422", None)
    return schema


def custom_openapi() -> dict[str, object]:
    if app.openapi_schema:
        return cast(dict[str, object], app.openapi_schema)

    schema = cast(
        dict[str, object],
        get_openapi(
            title=app.title,
            version=cast(str, app.version) if app.version else "0.1.0",
            routes=app.routes,
        ),
    )
    app.openapi_schema = _patch_openapi(schema)
    return cast(dict[str, object], app.openapi_schema)


app.openapi = custom_openapi  # type: ignore[method-assign]
