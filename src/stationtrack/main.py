"""FastAPI application factory.

Run with ``uvicorn stationtrack.main:create_app --factory``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stationtrack import __version__
from stationtrack.api.router import api_router
from stationtrack.config import settings
from stationtrack.core.audit import AuditRecorder
from stationtrack.core.auth import PrincipalContextMiddleware, RequestIdMiddleware
from stationtrack.core.database import async_engine, async_session_factory
from stationtrack.core.errors import register_exception_handlers
from stationtrack.core.logging import RequestLoggingMiddleware


DEV_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def configure_logging() -> None:
    """JSON lines in production, coloured console output elsewhere."""
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.is_production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the audit worker; on shutdown flush it before the engine goes."""
    recorder: AuditRecorder = app.state.audit_recorder

    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
        audit_queue_max_size=recorder.max_queue_size,
    )
    recorder.start()

    yield

    logger.info("application_shutdown")
    await recorder.stop()
    logger.info("audit_recorder_stopped", **recorder.snapshot())

    await async_engine.dispose()
    logger.info("database_engine_disposed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    The audit recorder lives on ``app.state.audit_recorder`` so audited
    routes and the ``Recorder`` dependency share one queue per app.
    """
    docs_enabled = not settings.is_production
    app = FastAPI(
        title=settings.app_name,
        description="Station administration backend with an audit trail",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    app.state.audit_recorder = AuditRecorder(
        async_session_factory,
        max_queue_size=settings.audit_queue_max_size,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins
        or (DEV_CORS_ORIGINS if settings.is_development else []),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    # Outermost last: request ID, then principal, then logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(PrincipalContextMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    return app
