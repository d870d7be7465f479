from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from idea_pilot.api.middleware.correlation_id import CorrelationIdMiddleware
from idea_pilot.api.middleware.metrics import RequestTimingMiddleware
from idea_pilot.api.v1.routers import (
    ai_proxy,
    community,
    conversations,
    health,
    notes,
    users,
    ws,
)
from idea_pilot.application.exceptions import (
    BackendError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from idea_pilot.config import settings
from idea_pilot.infrastructure.backend.client import AIBackendClient
from idea_pilot.infrastructure.db.session import AsyncSessionLocal
from idea_pilot.infrastructure.realtime.redis_client import RedisRealtimeClient
from idea_pilot.infrastructure.realtime.sources import uow_factory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    app.state.realtime = RedisRealtimeClient(
        app.state.redis,
        topic_prefix=settings.REALTIME_TOPIC_PREFIX,
    )
    app.state.open_uow = uow_factory(AsyncSessionLocal)
    app.state.backend = AIBackendClient(
        settings.AI_BACKEND_URL,
        timeout=settings.AI_BACKEND_TIMEOUT,
        verify=settings.AI_BACKEND_VERIFY_SSL,
    )
    logger.info("Realtime client and AI backend client ready")

    yield

    await ws.manager.close_all()
    await app.state.realtime.close()
    await app.state.backend.aclose()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Idea Pilot",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(community.router)
    app.include_router(conversations.router)
    app.include_router(ai_proxy.router)
    app.include_router(notes.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(BackendError)
    async def _backend(_req: Request, exc: BackendError) -> JSONResponse:
        content: dict[str, object] = {"error": exc.error, "details": exc.detail}
        if exc.status_code is not None:
            content["status_code"] = exc.status_code
        return JSONResponse(
            status_code=502,
            content=content,
            headers={"Cache-Control": "no-store, max-age=0"},
        )
