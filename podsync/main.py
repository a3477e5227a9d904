"""FastAPI application factory."""
from __future__ import annotations

import time
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from podsync import __version__
from podsync.api.v2 import api_router
from podsync.config import settings
from podsync.utils.exceptions import PodSyncError, to_http_exception


tags_metadata: List[dict[str, str]] = [
    {"name": "auth", "description": "Log in and out of a sync session."},
    {"name": "devices", "description": "List and update client devices."},
    {"name": "subscriptions", "description": "Synchronize per-device subscription lists."},
    {"name": "episodes", "description": "Synchronize episode playback state."},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="gpodder-compatible podcast synchronization server.",
        version=__version__,
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
    )

    @app.middleware("http")
    async def access_log(request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "-"
        logger.info(
            f'{client} "{request.method} {request.url.path}" {response.status_code} '
            f'"{request.headers.get("user-agent", "-")}" {elapsed_ms:.1f}ms'
        )
        return response

    @app.exception_handler(PodSyncError)
    async def podsync_exception_handler(request: Request, exc: PodSyncError) -> JSONResponse:
        http_exc = to_http_exception(exc)
        return JSONResponse(
            status_code=http_exc.status_code,
            content={"detail": http_exc.detail},
            headers=http_exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_errors(exc), "message": "Validation failed"},
        )

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def hello() -> str:
        return "PodSync is Working!"

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Drop non-serializable ``ctx`` entries pydantic attaches to value errors."""

    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


app = create_app()
