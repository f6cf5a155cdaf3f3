"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on SQLite locally and on any SQLAlchemy-supported database later
2. Keep the ledger engines decoupled from the storage implementation
3. Swap in fakes when testing the flows

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger needs.

Multi-step writes (root + split lines + balance) are a single unit:
an implementation must commit all of them or none of them.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from ledger.models.transaction import (
    Account,
    Category,
    CategoryDraft,
    CategoryType,
    RootTransaction,
    SplitLine,
    TransactionDraft,
)
from ledger.models.note import Note, NoteDraft
from ledger.models.audit import AuditEvent


class AccountStorageInterface(ABC):
    """Accounts are created out-of-band (seed data) and read by the ledger."""

    @abstractmethod
    async def create_account(
        self,
        name: str,
        currency: str = "TWD",
        balance: Decimal = Decimal("0"),
    ) -> Account:
        """Create an account with an opening stored balance."""
        pass

    @abstractmethod
    async def get_account(self, account_id: int) -> Optional[Account]:
        """Return the account, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """All accounts ordered by id."""
        pass


class CategoryStorageInterface(ABC):

    @abstractmethod
    async def list_categories(
        self,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        """All categories, optionally only those of one type."""
        pass

    @abstractmethod
    async def create_category(self, draft: CategoryDraft) -> Category:
        pass

    @abstractmethod
    async def delete_category(self, category_id: int) -> bool:
        """
        Delete a category.

        Transactions that used it become uncategorized.

        Returns:
            True if a row was deleted
        """
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for ledger transactions.

    Root transactions own zero or more split lines, one level deep.
    """

    @abstractmethod
    async def create_transaction(self, draft: TransactionDraft) -> int:
        """
        Insert a root transaction and its split lines.

        The owning account's stored balance is adjusted in the same
        transactional scope.

        Returns:
            The new root id

        Raises:
            ValidationError: If date, account or amount is missing
            StorageError: If the write fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: int,
        draft: TransactionDraft,
    ) -> None:
        """
        Overwrite a root and replace its whole set of split lines.

        Raises:
            ValidationError: If date, account or amount is missing
            NotFoundError: If no root transaction has this id
            StorageError: If the write fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete one row, root or split line.

        Deleting a root does NOT delete its split lines.

        Returns:
            True if a row was deleted
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: int,
    ) -> Optional[Union[RootTransaction, SplitLine]]:
        """Return a root (with children) or a split line by id."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        account_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[RootTransaction]:
        """
        List root transactions, newest first.

        Ordered by date descending, then creation time descending.
        Split lines are never returned here and children are not attached.

        Args:
            account_id: Only this account's roots; None means all accounts
            limit: Maximum number of results; None means no limit
        """
        pass

    @abstractmethod
    async def list_split_lines(self, parent_id: int) -> list[SplitLine]:
        """Split lines pointing at parent_id, by line id ascending."""
        pass

    @abstractmethod
    async def list_roots_in_period(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        account_ids: Optional[list[int]] = None,
    ) -> list[RootTransaction]:
        """
        Root transactions in [date_from, date_to] for the given accounts.

        Either bound may be None. An empty or None account list means all.
        """
        pass


class NoteStorageInterface(ABC):

    @abstractmethod
    async def list_notes(self) -> list[Note]:
        """Notes by date descending, then creation time descending."""
        pass

    @abstractmethod
    async def create_note(self, draft: NoteDraft) -> int:
        pass

    @abstractmethod
    async def update_note(self, note_id: int, draft: NoteDraft) -> bool:
        pass

    @abstractmethod
    async def delete_note(self, note_id: int) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


# Name used by the HTTP layer for any persistence failure
StoreError = StorageError


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
