"""Pydantic schemas for the audit read API.

Responses use camelCase keys (``actorId``, ``currentPage``) to match the
existing admin front end.
"""

import math
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================
# Events
# ============================================================


class ActorSummary(CamelModel):
    """Display attributes of the user behind an event."""

    id: UUID
    first_name: str
    last_name: str
    username: str
    role: str | None = None

    @classmethod
    def from_user(cls, user: Any) -> "ActorSummary":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            username=user.username,
            role=user.role_name,
        )


class AuditEventResponse(CamelModel):
    """A stored audit event with its actor, if the actor still exists."""

    id: UUID
    actor_id: UUID
    action: str
    target_type: str
    target_id: str
    occurred_at: datetime
    source_address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    actor: ActorSummary | None = None

    @classmethod
    def from_row(cls, event: Any, actor: Any | None) -> "AuditEventResponse":
        return cls(
            id=event.id,
            actor_id=event.actor_id,
            action=event.action,
            target_type=event.target_type,
            target_id=event.target_id,
            occurred_at=event.occurred_at,
            source_address=event.source_address,
            created_at=event.created_at,
            updated_at=event.updated_at,
            actor=ActorSummary.from_user(actor) if actor is not None else None,
        )


class Pagination(CamelModel):
    """Offset pagination metadata."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class AuditEventPage(CamelModel):
    """One page of audit events."""

    items: list[AuditEventResponse]
    pagination: Pagination


class ActorAuditEventPage(AuditEventPage):
    """One page of a single actor's audit events."""

    user_info: ActorSummary


# ============================================================
# Statistics
# ============================================================


class OverallStats(CamelModel):
    total_logs: int
    recent_logs: int
    period: str


class ActionCount(CamelModel):
    action: str
    count: int
    share: str


class TargetTypeCount(CamelModel):
    target_type: str
    count: int
    share: str


class ActorActivity(CamelModel):
    actor_id: UUID
    count: int
    actor: ActorSummary | None = None


class DailyCount(CamelModel):
    date: date
    count: int


class AuditStatistics(CamelModel):
    """Statistics bundle for a scope and trailing window."""

    overall: OverallStats
    action_stats: list[ActionCount]
    target_type_stats: list[TargetTypeCount]
    user_activity_stats: list[ActorActivity]
    daily_stats: list[DailyCount]
