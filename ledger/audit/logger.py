"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged.
This provides:
1. Complete traceability of balance-moving operations
2. Debugging capability when a write is rolled back
3. A record of detected inconsistencies

The audit logger:
- Is async to match the storage interface
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder
from ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Structured logger shared by the ledger modules."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_log table (when a storage is configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                stored = await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False
            if not stored:
                self._logger.error(
                    "audit_storage_failed",
                    event_id=str(event.event_id),
                )
            return stored

        return True

    async def log_transaction_created(
        self,
        transaction_id: int,
        account_id: int,
        amount: str,
        split_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            account_id=account_id,
            amount=amount,
            split_count=split_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: int,
        amount: str,
        split_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            amount=amount,
            split_count=split_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        was_root: bool,
        orphaned_lines: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            was_root=was_root,
            orphaned_lines=orphaned_lines,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_split_mismatch(
        self,
        transaction_id: int,
        root_amount: str,
        split_total: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.split_mismatch(
            transaction_id=transaction_id,
            root_amount=root_amount,
            split_total=split_total,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: UUID,
        entity_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            issues=issues,
            correlation_id=correlation_id,
            entity_id=entity_id,
        )
        await self.log(event)

    async def log_category_created(
        self,
        category_id: int,
        name: str,
        category_type: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.category_created(
            category_id=category_id,
            name=name,
            category_type=category_type,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_category_deleted(
        self,
        category_id: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.category_deleted(
            category_id=category_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_note_saved(
        self,
        note_id: int,
        created: bool,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.note_saved(
            note_id=note_id,
            created=created,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_note_deleted(
        self,
        note_id: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.note_deleted(
            note_id=note_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_mismatch(
        self,
        account_id: int,
        stored: str,
        derived: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.balance_mismatch(
            account_id=account_id,
            stored=stored,
            derived=derived,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each request and pass it through
    all subsequent operations.
    """
    return uuid4()
