"""Audit query and aggregation service.

Read-only. Validates filters before touching the database, so invalid
requests scan nothing.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Annotated
from uuid import UUID

from fastapi import Depends

from stationtrack.api.dependencies import DBSession
from stationtrack.core.audit.models import AuditEvent
from stationtrack.core.audit.recorder import utcnow
from stationtrack.core.audit.repos import AuditEventRepository, AuditFilters
from stationtrack.core.audit.schemas import (
    ActionCount,
    ActorActivity,
    ActorAuditEventPage,
    ActorSummary,
    AuditEventPage,
    AuditEventResponse,
    AuditStatistics,
    DailyCount,
    OverallStats,
    Pagination,
    TargetTypeCount,
)
from stationtrack.core.constants import (
    DAILY_STATS_DAYS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_STATS_DAYS,
    MAX_PAGE_SIZE,
    MAX_STATS_DAYS,
    TOP_STATS_LIMIT,
)
from stationtrack.core.errors import NotFoundError, ValidationError
from stationtrack.modules.users.repos import UserRepository


def percentage(part: int, total: int) -> str:
    """Share of ``part`` in ``total`` as a two-decimal string.

    Returns "0" when total is zero.
    """
    if total <= 0:
        return "0"
    hundredths = (part * 10000 + total // 2) // total
    return f"{hundredths // 100}.{hundredths % 100:02d}"


def validate_page(page: int, limit: int) -> None:
    errors = []
    if page < 1:
        errors.append({"field": "page", "message": "must be greater than or equal to 1"})
    if not 1 <= limit <= MAX_PAGE_SIZE:
        errors.append(
            {"field": "limit", "message": f"must be between 1 and {MAX_PAGE_SIZE}"}
        )
    if errors:
        raise ValidationError("Invalid pagination parameters", errors=errors)


def validate_filters(filters: AuditFilters) -> None:
    if (
        filters.start_date is not None
        and filters.end_date is not None
        and filters.start_date > filters.end_date
    ):
        raise ValidationError(
            "Invalid date range",
            errors=[
                {"field": "startDate", "message": "must not be after endDate"},
            ],
        )


class AuditQueryService:
    """Listing, lookup and statistics over the audit trail."""

    def __init__(self, session: DBSession) -> None:
        self.session = session
        self.events = AuditEventRepository(session)
        self.users = UserRepository(session)

    async def list_events(
        self,
        filters: AuditFilters,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> AuditEventPage:
        """List events matching filters, newest first.

        Raises:
            ValidationError: If pagination or the date range is invalid
        """
        validate_page(page, limit)
        validate_filters(filters)

        rows, total = await self.events.list_with_actor(
            filters, offset=(page - 1) * limit, limit=limit
        )
        return AuditEventPage(
            items=[AuditEventResponse.from_row(event, actor) for event, actor in rows],
            pagination=Pagination.build(page, limit, total),
        )

    async def get_event(self, event_id: UUID) -> AuditEventResponse:
        """Get one event with its actor.

        Raises:
            NotFoundError: If the event does not exist
        """
        row = await self.events.get_with_actor(event_id)
        if row is None:
            raise NotFoundError(
                "Audit log not found",
                resource="audit_event",
                resource_id=str(event_id),
            )
        return AuditEventResponse.from_row(*row)

    async def list_for_actor(
        self,
        actor_id: UUID,
        filters: AuditFilters | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ActorAuditEventPage:
        """List one actor's events.

        Raises:
            ValidationError: If pagination or the date range is invalid
            NotFoundError: If the actor does not exist
        """
        filters = filters or AuditFilters()
        validate_page(page, limit)
        validate_filters(filters)

        actor = await self.users.get_by_id(actor_id)
        if actor is None:
            raise NotFoundError(
                "User not found",
                resource="user",
                resource_id=str(actor_id),
            )

        scoped = replace(filters, actor_id=actor_id)
        rows, total = await self.events.list_with_actor(
            scoped, offset=(page - 1) * limit, limit=limit
        )
        return ActorAuditEventPage(
            items=[AuditEventResponse.from_row(event, actor) for event, actor in rows],
            user_info=ActorSummary.from_user(actor),
            pagination=Pagination.build(page, limit, total),
        )

    async def statistics(
        self,
        actor_id: UUID | None = None,
        target_type: str | None = None,
        days: int = DEFAULT_STATS_DAYS,
        now: datetime | None = None,
    ) -> AuditStatistics:
        """Build the statistics bundle for a scope and trailing window.

        Args:
            actor_id: Optional actor scope
            target_type: Optional target type scope
            days: Length of the trailing window in days
            now: Reference time, defaults to the current time

        Raises:
            ValidationError: If days is out of range
        """
        if not 1 <= days <= MAX_STATS_DAYS:
            raise ValidationError(
                "Invalid statistics window",
                errors=[
                    {"field": "days", "message": f"must be between 1 and {MAX_STATS_DAYS}"}
                ],
            )

        now = now or utcnow()
        since = now - timedelta(days=days)
        scope = {"actor_id": actor_id, "target_type": target_type}

        total_logs = await self.events.count(**scope)
        recent_logs = await self.events.count(**scope, since=since)

        actions = await self.events.top_values(
            AuditEvent.action, since, TOP_STATS_LIMIT, **scope
        )
        target_types = await self.events.top_values(
            AuditEvent.target_type, since, TOP_STATS_LIMIT, **scope
        )
        actor_counts = await self.events.top_values(
            AuditEvent.actor_id, since, TOP_STATS_LIMIT, **scope
        )
        actors = await self.events.get_actors([a for a, _ in actor_counts])
        daily = await self.events.daily_counts(
            now - timedelta(days=DAILY_STATS_DAYS), **scope
        )

        return AuditStatistics(
            overall=OverallStats(
                total_logs=total_logs,
                recent_logs=recent_logs,
                period=f"Last {days} days",
            ),
            action_stats=[
                ActionCount(action=a, count=c, share=percentage(c, recent_logs))
                for a, c in actions
            ],
            target_type_stats=[
                TargetTypeCount(target_type=t, count=c, share=percentage(c, recent_logs))
                for t, c in target_types
            ],
            user_activity_stats=[
                ActorActivity(
                    actor_id=a,
                    count=c,
                    actor=ActorSummary.from_user(actors[a]) if a in actors else None,
                )
                for a, c in actor_counts
            ],
            daily_stats=[DailyCount(date=d, count=c) for d, c in daily],
        )


# Type alias for dependency injection
AuditQuery = Annotated[AuditQueryService, Depends(AuditQueryService)]
