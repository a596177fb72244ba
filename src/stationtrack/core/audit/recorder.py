"""Audit recorder: the write path of the audit trail.

Two entry points share one write:

- ``record_explicit`` is awaited by business code that already knows
  every field.
- ``submit`` is used by the interception adapter. It puts the entry on a
  bounded queue and returns at once; a background worker performs the
  write. A full queue drops the entry and counts it instead of blocking.

Writes go through their own session, so a failing audit insert can never
roll back or fail the business transaction. Persistence errors are
logged and suppressed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stationtrack.core.audit.context import get_audit_context
from stationtrack.core.audit.models import AuditEvent
from stationtrack.core.audit.repos import AuditEventRepository
from stationtrack.core.audit.vocabulary import (
    AuditAction,
    TargetType,
    normalize_action,
    normalize_target_type,
)
from stationtrack.core.constants import (
    DEFAULT_AUDIT_QUEUE_SIZE,
    MAX_AUDIT_TARGET_ID_LENGTH,
    MAX_IPV6_LENGTH,
)
from stationtrack.core.errors import PersistenceError


log = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(UTC)


def clip(value: str, max_length: int) -> str:
    return value[:max_length]


@dataclass(frozen=True)
class PendingAuditEvent:
    """An audit event waiting to be written.

    ``occurred_at`` is stamped when the entry is created, not when the
    worker gets to it. ``target_id`` and ``source_address`` are cut to
    their column widths.
    """

    actor_id: UUID
    action: str
    target_type: str
    target_id: str
    source_address: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "target_id", clip(self.target_id, MAX_AUDIT_TARGET_ID_LENGTH)
        )
        if self.source_address is not None:
            object.__setattr__(
                self, "source_address", clip(self.source_address, MAX_IPV6_LENGTH)
            )

    def to_model(self) -> AuditEvent:
        return AuditEvent(
            actor_id=self.actor_id,
            action=self.action,
            target_type=self.target_type,
            target_id=self.target_id,
            occurred_at=self.occurred_at,
            source_address=self.source_address,
        )


@dataclass
class RecorderStats:
    """Counters describing the recorder since startup."""

    written: int = 0
    failed: int = 0
    dropped: int = 0

    def as_dict(self, queued: int) -> dict[str, int]:
        return {
            "queued": queued,
            "written": self.written,
            "failed": self.failed,
            "dropped": self.dropped,
        }


class AuditRecorder:
    """Records audit events without ever failing the caller.

    Usage:
        recorder = AuditRecorder(async_session_factory)
        await recorder.record_explicit(
            actor_id=user.id,
            action=AuditAction.USER_UPDATED,
            target_type=TargetType.USER,
            target_id=str(target.id),
            source_address="10.0.0.1",
        )
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_queue_size: int = DEFAULT_AUDIT_QUEUE_SIZE,
    ) -> None:
        self.session_factory = session_factory
        self.max_queue_size = max_queue_size
        self.stats = RecorderStats()
        self._queue: asyncio.Queue[PendingAuditEvent] | None = None
        self._worker_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Explicit path
    # ------------------------------------------------------------------

    async def record_explicit(
        self,
        actor_id: UUID,
        action: AuditAction | str,
        target_type: TargetType | str,
        target_id: str,
        source_address: str | None = None,
    ) -> AuditEvent | None:
        """Write an audit event now.

        Never raises. Invalid vocabulary or a failing store is logged and
        reported as None.

        Returns:
            The stored event, or None if it could not be written
        """
        try:
            entry = PendingAuditEvent(
                actor_id=actor_id,
                action=normalize_action(action),
                target_type=normalize_target_type(target_type),
                target_id=str(target_id),
                source_address=source_address,
            )
        except ValueError as exc:
            log.error("audit_event_rejected", error=str(exc))
            return None

        # Shielded so a cancelled request still gets its audit row
        return await asyncio.shield(self.record_from_interception(entry))

    async def record_current_actor(
        self,
        action: AuditAction | str,
        target_type: TargetType | str,
        target_id: str,
    ) -> AuditEvent | None:
        """Record for the actor in the current request's audit context.

        Anonymous contexts are skipped.
        """
        context = get_audit_context()
        if context.actor_id is None:
            log.debug("audit_skipped_anonymous", action=str(action))
            return None
        return await self.record_explicit(
            actor_id=context.actor_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            source_address=context.source_address,
        )

    async def record_from_interception(
        self, entry: PendingAuditEvent
    ) -> AuditEvent | None:
        """Persist an entry, containing any store failure."""
        try:
            event = await self._write(entry)
        except PersistenceError as exc:
            self.stats.failed += 1
            log.error(
                "audit_event_write_failed",
                action=entry.action,
                target_type=entry.target_type,
                target_id=entry.target_id,
                actor_id=str(entry.actor_id),
                error=exc.message,
            )
            return None
        except Exception:
            self.stats.failed += 1
            log.exception(
                "audit_event_write_error",
                action=entry.action,
                target_type=entry.target_type,
            )
            return None

        self.stats.written += 1
        log.info(
            "audit_event_recorded",
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            actor_id=str(entry.actor_id),
        )
        return event

    async def _write(self, entry: PendingAuditEvent) -> AuditEvent:
        try:
            async with self.session_factory() as session:
                event = await AuditEventRepository(session).append(entry.to_model())
                await session.commit()
                return event
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceError(
                f"{type(exc).__name__}: {exc}",
                details={"action": entry.action},
            ) from exc

    # ------------------------------------------------------------------
    # Queued path
    # ------------------------------------------------------------------

    def submit(self, entry: PendingAuditEvent) -> bool:
        """Queue an entry for the background worker without waiting.

        Returns:
            True if queued, False if the queue was full and it was dropped
        """
        queue = self._get_queue()
        try:
            queue.put_nowait(entry)
        except asyncio.QueueFull:
            self.stats.dropped += 1
            log.warning(
                "audit_queue_full",
                action=entry.action,
                target_type=entry.target_type,
                dropped=self.stats.dropped,
            )
            return False

        self._ensure_worker()
        return True

    def start(self) -> None:
        """Start the background worker if it is not running."""
        self._get_queue()
        self._ensure_worker()

    async def drain(self) -> None:
        """Wait until every queued entry has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Drain the queue and stop the worker."""
        await self.drain()
        if self._worker_task is not None:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None

    def snapshot(self) -> dict[str, Any]:
        queued = self._queue.qsize() if self._queue is not None else 0
        return self.stats.as_dict(queued)

    def _get_queue(self) -> asyncio.Queue[PendingAuditEvent]:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        return self._queue

    def _ensure_worker(self) -> None:
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(
                self._worker(), name="audit-recorder"
            )

    async def _worker(self) -> None:
        queue = self._get_queue()
        while True:
            entry = await queue.get()
            try:
                await self.record_from_interception(entry)
            finally:
                queue.task_done()
