"""Audit event database model.

Stores one row per audited mutation: who did what to which resource,
from where and when. Rows are insert-only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, Identity, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stationtrack.core.constants import (
    MAX_AUDIT_ACTION_LENGTH,
    MAX_AUDIT_TARGET_ID_LENGTH,
    MAX_AUDIT_TARGET_TYPE_LENGTH,
    MAX_IPV6_LENGTH,
)
from stationtrack.core.database.base import Base, TimestampMixin, UUIDMixin


class AuditEvent(Base, UUIDMixin, TimestampMixin):
    """Audit trail entry.

    ``actor_id`` and ``target_id`` carry no foreign keys;
    events stay valid after the actor or the target row is deleted.

    Attributes:
        seq: Insertion sequence, breaks ties between equal timestamps
        actor_id: The user who performed the action
        action: Action code (see AuditAction)
        target_type: Kind of resource affected (see TargetType)
        target_id: ID of the affected resource, or "unknown"
        occurred_at: When the action happened
        source_address: Caller's network origin, if known
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_actor_occurred", "actor_id", "occurred_at"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        Identity(always=True),
        nullable=False,
        unique=True,
    )

    # Who
    actor_id: Mapped[UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    # What happened
    action: Mapped[str] = mapped_column(
        String(MAX_AUDIT_ACTION_LENGTH),
        nullable=False,
        index=True,
    )
    target_type: Mapped[str] = mapped_column(
        String(MAX_AUDIT_TARGET_TYPE_LENGTH),
        nullable=False,
        index=True,
    )
    target_id: Mapped[str] = mapped_column(
        String(MAX_AUDIT_TARGET_ID_LENGTH),
        nullable=False,
        index=True,
    )

    # When and from where
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    source_address: Mapped[str | None] = mapped_column(
        String(MAX_IPV6_LENGTH),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent(id={self.id}, action={self.action}, "
            f"target_type={self.target_type}, target_id={self.target_id})>"
        )
