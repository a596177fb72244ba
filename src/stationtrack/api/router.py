"""Root router: probes at the top level, feature modules under ``/api/v1``."""

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from stationtrack.api.dependencies import DBSession
from stationtrack.config import settings
from stationtrack.core.audit.routes import router as audit_router
from stationtrack.modules import discover_modules


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness result with one entry per dependency and recorder counters."""

    status: str
    checks: dict[str, str]
    audit: dict[str, int] | None = None


health_router = APIRouter(tags=["health"])


@health_router.get("/health/live", response_model=HealthResponse, summary="Liveness probe")
async def liveness() -> HealthResponse:
    return HealthResponse(status="alive")


@health_router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Checks the database and reports audit recorder counters.",
)
async def readiness(request: Request, db: DBSession) -> JSONResponse:
    """Ready when the database answers; audit counters are informational."""
    checks: dict[str, str] = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        checks["database"] = str(e)

    ready = all(v == "ok" for v in checks.values())
    recorder = getattr(request.app.state, "audit_recorder", None)

    body = ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        audit=recorder.snapshot() if recorder is not None else None,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(exclude_none=True),
    )


@health_router.get("/info", summary="Application info")
async def info() -> dict[str, Any]:
    return {
        "app": settings.app_name,
        "environment": settings.environment,
        "debug": settings.debug,
    }


v1_router = APIRouter(prefix="/api/v1")
for module_router in discover_modules():
    v1_router.include_router(module_router)
v1_router.include_router(audit_router)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(v1_router)
