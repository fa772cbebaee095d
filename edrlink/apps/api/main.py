from __future__ import annotations

from contextlib import asynccontextmanager
import time
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from edrlink.apps.api.errors import (
    edrlink_exception_handler,
    http_exception_handler,
    starlette_http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from edrlink.apps.api.routes.actions import router as actions_router
from edrlink.apps.api.routes.activation import router as activation_router
from edrlink.apps.api.routes.bitdefender import router as bitdefender_router
from edrlink.apps.api.routes.endpoints import router as endpoints_router
from edrlink.apps.api.routes.health import router as health_router
from edrlink.apps.api.routes.isolation import router as isolation_router
from edrlink.apps.api.routes.register import router as register_router
from edrlink.apps.api.routes.stats import router as stats_router
from edrlink.core.config import get_settings
from edrlink.core.errors import EdrLinkError
from edrlink.core.logging import configure_logging
from edrlink.providers.bitdefender.client import BitdefenderConfig
from edrlink.providers.factory import close_clients
from edrlink.services.telemetry import record_request


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Release vendor connection pools and the cached token on shutdown.
    await close_clients()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    if settings.bitdefender_enabled:
        # Missing JSON-RPC credentials are a startup failure, not a per-request one.
        BitdefenderConfig.from_settings(settings)

    app = FastAPI(title="edrlink API", lifespan=lifespan)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000.0
        record_request(
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await starlette_http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(EdrLinkError)
    async def _edrlink_exception_handler(request: Request, exc: EdrLinkError):
        return await edrlink_exception_handler(request, exc)

    app.include_router(health_router)
    # Dashboard-facing security routes; all require the session cookie.
    app.include_router(register_router)
    app.include_router(endpoints_router)
    app.include_router(isolation_router)
    app.include_router(actions_router)
    app.include_router(stats_router)
    app.include_router(activation_router)
    if settings.bitdefender_enabled:
        app.include_router(bitdefender_router)

    return app


app = create_app()
