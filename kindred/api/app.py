"""
FastAPI application for the Kindred matching-and-chat service.

Start with: uvicorn kindred.api.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kindred.builder import ServiceBuilder
from kindred.core.errors import CooldownError, KindredError, ModerationRejectedError
from kindred.infra.config import KindredConfig
from kindred.infra.event_pusher import WebSocketEventPusher
from kindred.infra.ws_manager import WebSocketManager

from .routes import router, ws_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize all dependencies on startup, clean up on shutdown."""
    config = KindredConfig()

    ws_manager = WebSocketManager()
    app.state.ws_manager = ws_manager

    event_pusher = WebSocketEventPusher(ws_manager)
    app.state.event_pusher = event_pusher

    service = ServiceBuilder.from_config(config, event_pusher=event_pusher).build()
    app.state.service = service
    app.state.config = config

    if not config.suggestion_provider:
        logger.warning("No KINDRED_SUGGESTION_PROVIDER set; suggestions will be canned")

    logger.info("Kindred API started")
    yield

    await service.shutdown()
    logger.info("Kindred API shutdown")


async def kindred_error_handler(request: Request, exc: KindredError) -> JSONResponse:
    """Map any domain error to {"error": code, "detail": message}."""
    body: dict = {"error": exc.code, "detail": str(exc)}
    headers = None
    if isinstance(exc, CooldownError):
        body["retry_after_seconds"] = round(exc.retry_after_seconds, 3)
        headers = {"Retry-After": str(max(1, int(exc.retry_after_seconds + 0.999)))}
    elif isinstance(exc, ModerationRejectedError):
        body["reason"] = exc.reason

    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content=body, headers=headers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Kindred API",
        description="Real-time matching and moderated chat",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=KindredConfig().get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(KindredError, kindred_error_handler)
    app.include_router(router)
    app.include_router(ws_router)

    return app


app = create_app()
