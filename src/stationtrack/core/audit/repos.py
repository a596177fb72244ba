"""Audit event repository.

The only write is ``append``; everything else is a SELECT. Listings
outer-join the actor so events whose user has since been deleted still
show up, with no actor details.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import ColumnElement, Select, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stationtrack.core.audit.models import AuditEvent


if TYPE_CHECKING:
    from stationtrack.modules.users.models import User


def _user_model() -> type["User"]:
    # Deferred: the users package imports the audit recorder for its routes
    from stationtrack.modules.users.models import User  # noqa: PLC0415

    return User


@dataclass(frozen=True)
class AuditFilters:
    """Filter dimensions for audit listings, ANDed together.

    Attributes:
        actor_id: Exact actor
        action: Case-insensitive substring of the action code
        target_type: Exact target type
        target_id: Exact target id
        start_date: Inclusive lower bound on occurred_at
        end_date: Inclusive upper bound on occurred_at
        search: Case-insensitive substring matched against action, target
            type and the actor's first name, last name or username (ORed)
    """

    actor_id: UUID | None = None
    action: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None


def _contains(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_conditions(filters: AuditFilters) -> list[ColumnElement[bool]]:
    """Translate filters into WHERE clauses.

    Search conditions reference the User table, so statements using them
    must outer-join users.
    """
    conditions: list[ColumnElement[bool]] = []

    if filters.actor_id:
        conditions.append(AuditEvent.actor_id == filters.actor_id)
    if filters.action:
        conditions.append(AuditEvent.action.ilike(_contains(filters.action), escape="\\"))
    if filters.target_type:
        conditions.append(AuditEvent.target_type == filters.target_type)
    if filters.target_id:
        conditions.append(AuditEvent.target_id == filters.target_id)
    if filters.start_date:
        conditions.append(AuditEvent.occurred_at >= filters.start_date)
    if filters.end_date:
        conditions.append(AuditEvent.occurred_at <= filters.end_date)
    if filters.search:
        User = _user_model()  # noqa: N806
        pattern = _contains(filters.search)
        conditions.append(
            or_(
                AuditEvent.action.ilike(pattern, escape="\\"),
                AuditEvent.target_type.ilike(pattern, escape="\\"),
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
            )
        )

    return conditions


def _scope_conditions(
    actor_id: UUID | None,
    target_type: str | None,
    since: datetime | None = None,
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if actor_id:
        conditions.append(AuditEvent.actor_id == actor_id)
    if target_type:
        conditions.append(AuditEvent.target_type == target_type)
    if since:
        conditions.append(AuditEvent.occurred_at >= since)
    return conditions


def _with_actor() -> Select[tuple[AuditEvent, "User"]]:
    User = _user_model()  # noqa: N806
    return select(AuditEvent, User).outerjoin(User, User.id == AuditEvent.actor_id)


class AuditEventRepository:
    """Repository for AuditEvent database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(self, event: AuditEvent) -> AuditEvent:
        """Insert a new event.

        Args:
            event: Event to store

        Returns:
            The stored event with its ID populated
        """
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_with_actor(
        self, event_id: UUID
    ) -> "tuple[AuditEvent, User | None] | None":
        """Get an event and its actor (None if the actor is gone).

        Returns:
            (event, actor) if the event exists, None otherwise
        """
        stmt = _with_actor().where(AuditEvent.id == event_id)
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def list_with_actor(
        self,
        filters: AuditFilters,
        offset: int,
        limit: int,
    ) -> "tuple[list[tuple[AuditEvent, User | None]], int]":
        """List events matching filters, newest first.

        Args:
            filters: Filter dimensions
            offset: Rows to skip
            limit: Maximum rows to return

        Returns:
            Tuple of ((event, actor) rows, total matching count)
        """
        User = _user_model()  # noqa: N806
        conditions = build_conditions(filters)

        count_stmt = (
            select(func.count(AuditEvent.id))
            .select_from(AuditEvent)
            .outerjoin(User, User.id == AuditEvent.actor_id)
            .where(*conditions)
        )
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            _with_actor()
            .where(*conditions)
            .order_by(AuditEvent.occurred_at.desc(), AuditEvent.seq.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        rows = [(row[0], row[1]) for row in result.all()]

        return rows, total

    async def count(
        self,
        actor_id: UUID | None = None,
        target_type: str | None = None,
        since: datetime | None = None,
    ) -> int:
        """Count events in a scope, optionally since a point in time."""
        stmt = select(func.count(AuditEvent.id)).where(
            *_scope_conditions(actor_id, target_type, since)
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def top_values(
        self,
        column: Any,
        since: datetime,
        limit: int,
        actor_id: UUID | None = None,
        target_type: str | None = None,
    ) -> list[tuple[Any, int]]:
        """Most frequent values of a column, ties broken by value.

        Args:
            column: AuditEvent column to group by
            since: Only events at or after this time
            limit: Number of groups to return
            actor_id: Optional actor scope
            target_type: Optional target type scope

        Returns:
            (value, count) pairs, most frequent first
        """
        count_col = func.count(AuditEvent.id).label("count")
        stmt = (
            select(column, count_col)
            .where(*_scope_conditions(actor_id, target_type, since))
            .group_by(column)
            .order_by(desc(count_col), column.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def daily_counts(
        self,
        since: datetime,
        actor_id: UUID | None = None,
        target_type: str | None = None,
    ) -> list[tuple[date, int]]:
        """Event counts per calendar date, most recent date first."""
        day = func.date(AuditEvent.occurred_at).label("day")
        stmt = (
            select(day, func.count(AuditEvent.id))
            .where(*_scope_conditions(actor_id, target_type, since))
            .group_by(day)
            .order_by(day.desc())
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_actors(self, actor_ids: Sequence[UUID]) -> dict[UUID, "User"]:
        """Load users for a set of actor ids."""
        if not actor_ids:
            return {}
        User = _user_model()  # noqa: N806
        result = await self.session.execute(select(User).where(User.id.in_(actor_ids)))
        return {user.id: user for user in result.scalars().all()}
