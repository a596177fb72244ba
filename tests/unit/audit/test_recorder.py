"""Tests for the audit recorder."""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from stationtrack.core.audit.context import clear_audit_context, set_audit_context
from stationtrack.core.audit.models import AuditEvent
from stationtrack.core.audit.recorder import AuditRecorder, PendingAuditEvent
from stationtrack.core.audit.vocabulary import AuditAction, TargetType
from stationtrack.core.constants import MAX_AUDIT_TARGET_ID_LENGTH, MAX_IPV6_LENGTH


def pending(**overrides) -> PendingAuditEvent:
    values = {
        "actor_id": uuid4(),
        "action": AuditAction.STATION_UPDATED.value,
        "target_type": TargetType.STATION.value,
        "target_id": "station-1",
        "source_address": "10.0.0.1",
    }
    values.update(overrides)
    return PendingAuditEvent(**values)


class TestExplicitRecording:
    """Tests for record_explicit."""

    @pytest.mark.asyncio
    async def test_writes_event(self, recorder, mock_session):
        """record_explicit should add, flush and commit one event."""
        actor_id = uuid4()

        event = await recorder.record_explicit(
            actor_id=actor_id,
            action=AuditAction.USER_UPDATED,
            target_type=TargetType.USER,
            target_id="user-9",
            source_address="192.168.1.5",
        )

        mock_session.add.assert_called_once()
        mock_session.commit.assert_awaited_once()

        added = mock_session.add.call_args[0][0]
        assert isinstance(added, AuditEvent)
        assert added is event
        assert added.actor_id == actor_id
        assert added.action == "USER_UPDATED"
        assert added.target_type == "User"
        assert added.target_id == "user-9"
        assert added.source_address == "192.168.1.5"
        assert added.occurred_at is not None
        assert recorder.stats.written == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_suppressed(self, recorder, mock_session):
        """A failing store is logged and reported as None, never raised."""
        mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))

        result = await recorder.record_explicit(
            actor_id=uuid4(),
            action=AuditAction.STATION_DELETED,
            target_type=TargetType.STATION,
            target_id="station-1",
        )

        assert result is None
        assert recorder.stats.failed == 1
        assert recorder.stats.written == 0

    @pytest.mark.asyncio
    async def test_connection_failure_is_suppressed(self, recorder, session_factory):
        session_factory.return_value.__aenter__.side_effect = OSError("refused")

        result = await recorder.record_explicit(
            actor_id=uuid4(),
            action=AuditAction.STATION_DELETED,
            target_type=TargetType.STATION,
            target_id="station-1",
        )

        assert result is None
        assert recorder.stats.failed == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_suppressed(self, recorder, mock_session):
        mock_session.flush.side_effect = RuntimeError("boom")

        result = await recorder.record_explicit(
            actor_id=uuid4(),
            action=AuditAction.STATION_UPDATED,
            target_type=TargetType.STATION,
            target_id="station-1",
        )

        assert result is None
        assert recorder.stats.failed == 1

    @pytest.mark.asyncio
    async def test_invalid_vocabulary_is_rejected_without_writing(
        self, recorder, session_factory
    ):
        result = await recorder.record_explicit(
            actor_id=uuid4(),
            action="not valid",
            target_type=TargetType.STATION,
            target_id="station-1",
        )

        assert result is None
        session_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_target_id_is_stringified(self, recorder, mock_session):
        await recorder.record_explicit(
            actor_id=uuid4(),
            action=AuditAction.BACKUP_CREATED,
            target_type=TargetType.BACKUP,
            target_id=42,
        )

        assert mock_session.add.call_args[0][0].target_id == "42"

    @pytest.mark.asyncio
    async def test_oversized_fields_are_clipped(self, recorder, mock_session):
        event = await recorder.record_explicit(
            actor_id=uuid4(),
            action=AuditAction.STATION_UPDATED,
            target_type=TargetType.STATION,
            target_id="s" * 300,
            source_address="a" * 200,
        )

        assert event is not None
        stored = mock_session.add.call_args[0][0]
        assert stored.target_id == "s" * MAX_AUDIT_TARGET_ID_LENGTH
        assert stored.source_address == "a" * MAX_IPV6_LENGTH


class TestPendingAuditEvent:
    def test_fields_within_limits_are_kept(self):
        entry = pending(target_id="station-1", source_address="2001:db8::17")

        assert entry.target_id == "station-1"
        assert entry.source_address == "2001:db8::17"

    def test_missing_source_address_stays_empty(self):
        assert pending(source_address=None).source_address is None

    def test_oversized_fields_are_clipped(self):
        entry = pending(target_id="t" * 256, source_address="x" * 46)

        assert len(entry.target_id) == MAX_AUDIT_TARGET_ID_LENGTH
        assert len(entry.source_address) == MAX_IPV6_LENGTH


class TestCurrentActorRecording:
    """Tests for record_current_actor."""

    @pytest.mark.asyncio
    async def test_uses_audit_context(self, recorder, mock_session):
        actor_id = uuid4()
        set_audit_context(actor_id=actor_id, source_address="172.16.0.4")
        try:
            await recorder.record_current_actor(
                AuditAction.PROFILE_UPDATED, TargetType.PROFILE, "profile-1"
            )
        finally:
            clear_audit_context()

        added = mock_session.add.call_args[0][0]
        assert added.actor_id == actor_id
        assert added.source_address == "172.16.0.4"

    @pytest.mark.asyncio
    async def test_anonymous_context_is_skipped(self, recorder, session_factory):
        result = await recorder.record_current_actor(
            AuditAction.PROFILE_UPDATED, TargetType.PROFILE, "profile-1"
        )

        assert result is None
        session_factory.assert_not_called()


class TestQueuedRecording:
    """Tests for submit and the background worker."""

    @pytest.mark.asyncio
    async def test_submitted_entry_is_written(self, recorder, mock_session):
        entry = pending()

        assert recorder.submit(entry) is True
        await recorder.drain()

        added = mock_session.add.call_args[0][0]
        assert added.target_id == entry.target_id
        assert added.occurred_at == entry.occurred_at
        assert recorder.stats.written == 1

    @pytest.mark.asyncio
    async def test_full_queue_drops_and_counts(self, session_factory, mock_session):
        """A full queue drops entries without blocking the caller."""
        recorder = AuditRecorder(session_factory, max_queue_size=1)
        try:
            assert recorder.submit(pending(target_id="kept")) is True
            assert recorder.submit(pending(target_id="dropped")) is False

            assert recorder.stats.dropped == 1
            assert recorder.snapshot()["queued"] == 1

            await recorder.drain()

            assert mock_session.add.call_count == 1
            assert mock_session.add.call_args[0][0].target_id == "kept"
        finally:
            await recorder.stop()

    @pytest.mark.asyncio
    async def test_worker_survives_failed_write(self, recorder, mock_session):
        mock_session.commit.side_effect = [SQLAlchemyError("down"), None]

        recorder.submit(pending(target_id="first"))
        recorder.submit(pending(target_id="second"))
        await recorder.drain()

        assert recorder.stats.failed == 1
        assert recorder.stats.written == 1

    @pytest.mark.asyncio
    async def test_entries_written_in_submission_order(self, recorder, mock_session):
        for i in range(3):
            recorder.submit(pending(target_id=f"s-{i}"))
        await recorder.drain()

        written = [call[0][0].target_id for call in mock_session.add.call_args_list]
        assert written == ["s-0", "s-1", "s-2"]

    @pytest.mark.asyncio
    async def test_stop_drains_queue(self, session_factory, mock_session):
        recorder = AuditRecorder(session_factory)
        recorder.start()
        recorder.submit(pending())

        await recorder.stop()

        assert recorder.stats.written == 1
        assert recorder.snapshot() == {
            "queued": 0,
            "written": 1,
            "failed": 0,
            "dropped": 0,
        }

    @pytest.mark.asyncio
    async def test_occurred_at_is_stamped_at_submission(self, recorder, mock_session):
        entry = pending()
        await asyncio.sleep(0.01)

        recorder.submit(entry)
        await recorder.drain()

        assert mock_session.add.call_args[0][0].occurred_at == entry.occurred_at
