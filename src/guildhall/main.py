# src/guildhall/main.py
"""Main entry point for the Guildhall application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from guildhall.api.v1 import (
    auth_router,
    channels_router,
    conversations_router,
    gateway_router,
    guilds_router,
    invites_router,
    messages_router,
    users_router,
)
from guildhall.core.errors import ChatError, InternalFailureError
from guildhall.core.settings import settings
from guildhall.init_db import init_db
from guildhall.realtime.broadcast import BroadcastRouter
from guildhall.realtime.rooms import RoomRegistry

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Render expected business failures in the HTTPException shape."""
    if isinstance(exc, InternalFailureError):
        logger.error("Internal failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=InternalFailureError.status_code,
        content={"detail": InternalFailureError.default_detail},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide any other unhandled failure behind the generic server error."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=InternalFailureError.status_code,
        content={"detail": InternalFailureError.default_detail},
    )


def create_app() -> FastAPI:
    """Build the application with its own room registry and broadcaster."""
    app = FastAPI(
        title="Guildhall API",
        description="Guilds, channels and direct messages with real-time fanout",
        version=settings.app_version,
    )

    app.state.rooms = RoomRegistry()
    app.state.broadcaster = BroadcastRouter(app.state.rooms)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Add GZip middleware for compression
    app.add_middleware(GZipMiddleware)

    app.add_exception_handler(ChatError, chat_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Include API routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(guilds_router, prefix="/api/v1")
    app.include_router(channels_router, prefix="/api/v1")
    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(conversations_router, prefix="/api/v1")
    app.include_router(invites_router, prefix="/api/v1")
    app.include_router(gateway_router, prefix="/api/v1")

    @app.on_event("startup")
    async def on_startup() -> None:
        init_db()
        logger.info("%s %s started", settings.app_name, settings.app_version)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "gateway": "/api/v1/gateway",
        }

    return app


configure_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("guildhall.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
