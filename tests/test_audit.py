"""Tests for the audit logger."""

from uuid import UUID, uuid4

import pytest

from brisk_insights.audit import AuditLogger, create_correlation_id
from brisk_insights.models.audit import AuditEventBuilder, AuditEventType
from brisk_insights.services.storage import AuditStorageInterface


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise RuntimeError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_persists_events(self, audit_logger, audit_storage):
        assert await audit_logger.log(AuditEventBuilder.user_signed_out("u")) is True
        [event] = await audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.USER_SIGNED_OUT

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        """A broken audit store must never break the action being audited."""
        logger = AuditLogger(FailingAuditStorage())
        assert await logger.log(AuditEventBuilder.user_signed_out("u")) is False

    @pytest.mark.asyncio
    async def test_local_only_logger(self):
        logger = AuditLogger()
        assert logger.storage is None
        assert await logger.log(AuditEventBuilder.user_signed_out("u")) is True

    @pytest.mark.asyncio
    async def test_chat_helpers_share_correlation(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        turn_id = uuid4()

        await audit_logger.log_chat_submitted(turn_id, 3, correlation_id)
        await audit_logger.log_chat_completed(turn_id, 4, 120, correlation_id)

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.CHAT_SUBMITTED,
            AuditEventType.CHAT_COMPLETED,
        ]
        assert events[1].details == {"chunk_count": 4, "reply_length": 120}

    def test_correlation_ids_are_unique(self):
        first, second = create_correlation_id(), create_correlation_id()
        assert isinstance(first, UUID)
        assert first != second
