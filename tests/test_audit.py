"""Tests for the audit logger."""

import pytest
from uuid import uuid4

from ledger.audit import AuditLogger, create_correlation_id
from ledger.models.audit import AuditEventBuilder
from ledger.services.storage import AuditStorageInterface, StorageError


class FailingAuditStorage(AuditStorageInterface):

    async def append_event(self, event):
        raise StorageError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class RecordingAuditStorage(FailingAuditStorage):

    def __init__(self):
        self.events = []

    async def append_event(self, event):
        self.events.append(event)
        return True


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_without_storage_logs_locally(self):
        event = AuditEventBuilder.category_deleted(category_id=1, correlation_id=uuid4())
        assert await AuditLogger().log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.store_error(operation="create_transaction", error_message="x")
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_wrappers_persist_events(self):
        storage = RecordingAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_note_saved(note_id=3, created=True, correlation_id=correlation_id)
        await logger.log_split_mismatch(
            transaction_id=1,
            root_amount="100",
            split_total="90",
            correlation_id=correlation_id,
        )

        assert [e.entity_id for e in storage.events] == [3, 1]
        assert all(e.correlation_id == correlation_id for e in storage.events)
