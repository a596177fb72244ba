"""Audit log API routes.

Read-only. Every endpoint requires the ``admin`` role.
"""

from dataclasses import replace
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from stationtrack.config import settings
from stationtrack.core.audit.repos import AuditFilters
from stationtrack.core.audit.schemas import (
    ActorAuditEventPage,
    AuditEventPage,
    AuditEventResponse,
    AuditStatistics,
)
from stationtrack.core.audit.service import AuditQuery
from stationtrack.core.auth import require_roles
from stationtrack.core.constants import (
    ADMIN_ROLE,
    DEFAULT_STATS_DAYS,
    MAX_PAGE_SIZE,
    MAX_STATS_DAYS,
)


router = APIRouter(
    prefix="/audit-logs",
    tags=["audit"],
    dependencies=[Depends(require_roles(ADMIN_ROLE))],
)


def audit_filters(
    action: str | None = Query(
        None, description="Case-insensitive substring of the action code"
    ),
    target_type: str | None = Query(None, alias="targetType"),
    target_id: str | None = Query(None, alias="targetId"),
    start_date: datetime | None = Query(
        None, alias="startDate", description="Inclusive lower bound on occurredAt"
    ),
    end_date: datetime | None = Query(
        None, alias="endDate", description="Inclusive upper bound on occurredAt"
    ),
    search: str | None = Query(
        None, description="Matches action, target type or actor name"
    ),
) -> AuditFilters:
    """Collect the shared filter query parameters."""
    return AuditFilters(
        action=action or None,
        target_type=target_type or None,
        target_id=target_id or None,
        start_date=start_date,
        end_date=end_date,
        search=search or None,
    )


# ============================================================
# Listing
# ============================================================


@router.get(
    "",
    response_model=AuditEventPage,
    summary="List audit logs",
    description="List audit events, newest first, with optional filters.",
)
async def list_audit_logs(
    service: AuditQuery,
    filters: AuditFilters = Depends(audit_filters),
    user_id: UUID | None = Query(None, alias="userId", description="Actor id"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.audit_default_page_size, ge=1, le=MAX_PAGE_SIZE),
) -> AuditEventPage:
    """List audit events."""
    if user_id is not None:
        filters = replace(filters, actor_id=user_id)
    return await service.list_events(filters, page=page, limit=limit)


@router.get(
    "/statistics",
    response_model=AuditStatistics,
    summary="Audit statistics",
    description="Counts by action, target type, actor and day.",
)
async def audit_statistics(
    service: AuditQuery,
    user_id: UUID | None = Query(None, alias="userId"),
    target_type: str | None = Query(None, alias="targetType"),
    days: int = Query(DEFAULT_STATS_DAYS, ge=1, le=MAX_STATS_DAYS),
) -> AuditStatistics:
    """Get statistics for a trailing window."""
    return await service.statistics(
        actor_id=user_id,
        target_type=target_type or None,
        days=days,
    )


@router.get(
    "/user/{user_id}",
    response_model=ActorAuditEventPage,
    summary="List a user's audit logs",
    description="List audit events performed by one user.",
)
async def list_user_audit_logs(
    user_id: UUID,
    service: AuditQuery,
    filters: AuditFilters = Depends(audit_filters),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.audit_default_page_size, ge=1, le=MAX_PAGE_SIZE),
) -> ActorAuditEventPage:
    """List one actor's audit events."""
    return await service.list_for_actor(user_id, filters, page=page, limit=limit)


@router.get(
    "/{event_id}",
    response_model=AuditEventResponse,
    summary="Get audit log",
    description="Get a single audit event with its actor.",
)
async def get_audit_log(
    event_id: UUID,
    service: AuditQuery,
) -> AuditEventResponse:
    """Get audit event by ID."""
    return await service.get_event(event_id)
