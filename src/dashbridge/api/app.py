"""
Dashbridge FastAPI Application

Main application factory and configuration.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from dashbridge import __version__
from dashbridge.config import settings
from dashbridge.core.log import configure_logging

from .routes import health, passthrough, proxy, realtime

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Lifespan Management
# ══════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logger.info(
        "Starting Dashbridge",
        version=__version__,
        environment=settings.app_env,
        credential_configured=bool(settings.dashscope_api_key),
    )

    # Shared client for the compatible-mode proxy
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            settings.proxy_timeout_s,
            connect=settings.proxy_connect_timeout_s,
        ),
        follow_redirects=False,
    )

    logger.info("Dashbridge started successfully")

    yield

    logger.info("Shutting down Dashbridge")
    await app.state.http_client.aclose()
    app.state.http_client = None
    logger.info("Dashbridge shutdown complete")


# ══════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Dashbridge",
        description="Realtime speech gateway for the DashScope realtime APIs",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # ──────────────────────────────────────────────────────────
    # Middleware
    # ──────────────────────────────────────────────────────────

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing."""
        start = time.perf_counter()

        response = await call_next(request)

        duration = (time.perf_counter() - start) * 1000
        logger.info(
            "Request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration, 2),
        )

        return response

    # ──────────────────────────────────────────────────────────
    # Routes
    # ──────────────────────────────────────────────────────────

    app.include_router(
        health.router,
        tags=["Health"],
    )

    app.include_router(
        proxy.router,
        tags=["Proxy"],
    )

    # WebSocket routes
    app.include_router(
        realtime.router,
        prefix="/realtime",
        tags=["Realtime"],
    )

    app.include_router(
        passthrough.router,
        tags=["Passthrough"],
    )

    return app


# Create default app instance
app = create_app()
