"""
Outline Workspace API Server

Entry point for the FastAPI application.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api import router as api_router
from app.core.config import get_settings
from app.core.database import dispose_engine, get_session_context
from app.core.email import drain_email_dispatcher
from app.core.logging import configure_logging
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.core.redis import close_redis, ping_redis
from app.core.responses import install_exception_handlers

settings = get_settings()
log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("workspace.starting", email_enabled=settings.email_enabled)
    yield
    log.info("workspace.shutting_down")
    await drain_email_dispatcher()
    await close_redis()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Outline Workspace",
        description="Multi-tenant workspace: organizations, invitations and outlines.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    install_exception_handlers(app)

    # Middleware (last added is outermost)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness probe: database and Redis must answer."""
        checks = {}
        try:
            async with get_session_context() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as exc:
            log.warning("ready.database_unavailable", error=str(exc))
            checks["database"] = "unavailable"
        try:
            await ping_redis()
            checks["redis"] = "ok"
        except Exception as exc:
            log.warning("ready.redis_unavailable", error=str(exc))
            checks["redis"] = "unavailable"

        ready = all(value == "ok" for value in checks.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"status": "ready" if ready else "not_ready", "checks": checks},
        )

    return app


app = create_app()
