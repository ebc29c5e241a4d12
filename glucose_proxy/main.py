"""
FastAPI application entrypoint for the Dexcom glucose proxy.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from glucose_proxy.api.routes import router as api_router
from glucose_proxy.core.config import get_settings
from glucose_proxy.core.logging import configure_logging
from glucose_proxy.dependencies import get_dexcom_token_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize the token database and load the stored record before serving."""
    try:
        token_service = get_dexcom_token_service()
        token_service.load()
    except Exception:
        logger.exception("Failed to initialize token database")
        raise
    logger.info("Token database initialized")
    yield


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render errors as ``{"error": ...}`` bodies instead of FastAPI's ``detail``."""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Glucose Proxy",
        version="0.1.0",
        description="Single-user proxy for Dexcom glucose readings, trends and charts.",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "glucose_proxy.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()


__all__ = ["app", "create_app", "run"]
