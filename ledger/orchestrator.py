"""
Main Orchestrator for Personal Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Transaction writes (validate -> store in one transaction -> audit)
2. Reports (fetch -> attach split lines -> replay / aggregate / convert)
3. Categories and notes (simple CRUD, audited)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the store without passing validation
- Every write and every store failure is audited
- Read models are always built from stored history
"""

from typing import NamedTuple, Optional, Union
from uuid import UUID

from ledger.audit import AuditLogger, create_correlation_id
from ledger.config import LedgerConfig, get_settings
from ledger.models.note import Note, NoteDraft
from ledger.models.report import LedgerView, NetWorthEstimate, StatsQuery, StatsResult
from ledger.models.transaction import (
    Account,
    Category,
    CategoryDraft,
    CategoryType,
    RootTransaction,
    SplitLine,
    TransactionDraft,
    ValidationIssue,
)
from ledger.queries import (
    AggregationEngine,
    LedgerReconstructor,
    NetWorthEstimator,
    SplitResolver,
)
from ledger.services.storage import (
    AccountStorageInterface,
    CategoryStorageInterface,
    NoteStorageInterface,
    NotFoundError,
    SqlAccountStorage,
    SqlAuditStorage,
    SqlCategoryStorage,
    SqlClient,
    SqlNoteStorage,
    SqlTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)
from ledger.validation import TransactionValidator, ValidationError


class TransactionFlow:
    """
    Orchestrates transaction writes and transaction listing.

    Flow for create/update:
    1. Validate → required fields are errors, split mismatch is a warning
    2. Check the account exists
    3. Store → root, lines and balance in one transactional scope
    4. Audit → the write, and the split mismatch if any
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        account_storage: AccountStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._storage = transaction_storage
        self._accounts = account_storage
        self._resolver = SplitResolver(transaction_storage)
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def _validate(
        self,
        draft: TransactionDraft,
        correlation_id: UUID,
        entity_id: Optional[int] = None,
    ):
        result = self._validator.validate(draft)

        if result.is_valid and await self._accounts.get_account(draft.account_id) is None:
            result.issues.append(ValidationIssue(
                field="account_id",
                issue_type="not_found",
                message=f"account {draft.account_id} does not exist",
                severity="error",
            ))
            result.is_valid = False

        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                correlation_id=correlation_id,
                entity_id=entity_id,
            )
            raise ValidationError(result)

        return result

    async def _audit_split_mismatch(
        self,
        transaction_id: int,
        draft: TransactionDraft,
        result,
        correlation_id: UUID,
    ) -> None:
        if any(issue.issue_type == "split_mismatch" for issue in result.issues):
            await self._audit_logger.log_split_mismatch(
                transaction_id=transaction_id,
                root_amount=str(draft.amount_twd),
                split_total=str(draft.split_total),
                correlation_id=correlation_id,
            )

    async def create(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> RootTransaction:
        """Validate, store and audit a new root with its split lines."""
        correlation_id = correlation_id or create_correlation_id()
        result = await self._validate(draft, correlation_id)

        try:
            transaction_id = await self._storage.create_transaction(draft)
        except StorageError as e:
            await self._audit_logger.log_store_error(
                operation="create_transaction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_transaction_created(
            transaction_id=transaction_id,
            account_id=draft.account_id,
            amount=str(draft.amount_twd),
            split_count=len(draft.children),
            correlation_id=correlation_id,
        )
        await self._audit_split_mismatch(transaction_id, draft, result, correlation_id)

        return await self._storage.get_transaction(transaction_id)

    async def update(
        self,
        transaction_id: int,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> RootTransaction:
        """Overwrite a root and wholesale-replace its split lines."""
        correlation_id = correlation_id or create_correlation_id()
        result = await self._validate(draft, correlation_id, entity_id=transaction_id)

        try:
            await self._storage.update_transaction(transaction_id, draft)
        except NotFoundError:
            raise
        except StorageError as e:
            await self._audit_logger.log_store_error(
                operation="update_transaction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_transaction_updated(
            transaction_id=transaction_id,
            amount=str(draft.amount_twd),
            split_count=len(draft.children),
            correlation_id=correlation_id,
        )
        await self._audit_split_mismatch(transaction_id, draft, result, correlation_id)

        return await self._storage.get_transaction(transaction_id)

    async def delete(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete one row by id.

        Deleting a root leaves its split lines in place; the audit event
        records how many were left behind.
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._storage.get_transaction(transaction_id)
        if existing is None:
            return False

        try:
            deleted = await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            await self._audit_logger.log_store_error(
                operation="delete_transaction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        if deleted:
            was_root = isinstance(existing, RootTransaction)
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                was_root=was_root,
                orphaned_lines=len(existing.children) if was_root else 0,
                correlation_id=correlation_id,
            )

        return deleted

    async def get(
        self,
        transaction_id: int,
    ) -> Optional[Union[RootTransaction, SplitLine]]:
        return await self._storage.get_transaction(transaction_id)

    async def list(
        self,
        account_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[RootTransaction]:
        """Roots newest first, each with its split lines attached."""
        roots = await self._storage.list_transactions(account_id=account_id, limit=limit)
        return await self._resolver.attach(roots)


class ReportFlow:
    """
    Orchestrates the read-side reports.

    All numbers are computed from stored history on every call;
    nothing is cached between requests.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        account_storage: AccountStorageInterface,
        config: LedgerConfig,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = transaction_storage
        self._accounts = account_storage
        self._resolver = SplitResolver(transaction_storage)
        self._reconstructor = LedgerReconstructor(config)
        self._aggregator = AggregationEngine(config)
        self._estimator = NetWorthEstimator(config)
        self._audit_logger = audit_logger or AuditLogger()

    async def accounts(self) -> list[Account]:
        return await self._accounts.list_accounts()

    async def ledger(
        self,
        account_id: int,
        limit: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerView:
        """
        Reconstruct the running balance of one account over its full history.

        The replay always walks every root; `limit` only trims the rows
        returned; the sentinel row is always kept.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = await self._accounts.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")

        roots = await self._storage.list_transactions(account_id=account_id)
        roots = await self._resolver.attach(roots)
        view = self._reconstructor.reconstruct(account, roots)

        if not view.reconciled:
            await self._audit_logger.log_balance_mismatch(
                account_id=account_id,
                stored=str(account.balance),
                derived=str(view.derived_balance),
                correlation_id=correlation_id,
            )

        if limit is not None and len(view.rows) - 1 > limit:
            view = view.model_copy(update={"rows": view.rows[:limit] + [view.sentinel]})

        return view

    async def stats(self, query: StatsQuery) -> StatsResult:
        roots = await self._storage.list_roots_in_period(
            date_from=query.start,
            date_to=query.end,
            account_ids=query.account_ids,
        )
        return self._aggregator.summarize(roots)

    async def net_worth(
        self,
        account_ids: Optional[list[int]] = None,
    ) -> NetWorthEstimate:
        accounts = await self._accounts.list_accounts()
        return self._estimator.estimate(accounts, account_ids)


class CategoryFlow:
    """Category CRUD. Listing can be narrowed to one category type."""

    def __init__(
        self,
        category_storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = category_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def list(self, category_type: Optional[CategoryType] = None) -> list[Category]:
        return await self._storage.list_categories(category_type)

    async def create(
        self,
        draft: CategoryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()
        category = await self._storage.create_category(draft)
        await self._audit_logger.log_category_created(
            category_id=category.id,
            name=category.name,
            category_type=category.type.value,
            correlation_id=correlation_id,
        )
        return category

    async def delete(
        self,
        category_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        deleted = await self._storage.delete_category(category_id)
        if deleted:
            await self._audit_logger.log_category_deleted(
                category_id=category_id,
                correlation_id=correlation_id,
            )
        return deleted


class NoteFlow:
    """Free-form notes. Not part of the ledger, kept as plain CRUD."""

    def __init__(
        self,
        note_storage: NoteStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = note_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def list(self) -> list[Note]:
        return await self._storage.list_notes()

    async def create(self, draft: NoteDraft, correlation_id: Optional[UUID] = None) -> int:
        note_id = await self._storage.create_note(draft)
        await self._audit_logger.log_note_saved(
            note_id=note_id,
            created=True,
            correlation_id=correlation_id or create_correlation_id(),
        )
        return note_id

    async def update(
        self,
        note_id: int,
        draft: NoteDraft,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        updated = await self._storage.update_note(note_id, draft)
        if updated:
            await self._audit_logger.log_note_saved(
                note_id=note_id,
                created=False,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return updated

    async def delete(self, note_id: int, correlation_id: Optional[UUID] = None) -> bool:
        deleted = await self._storage.delete_note(note_id)
        if deleted:
            await self._audit_logger.log_note_deleted(
                note_id=note_id,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return deleted


class AppComponents(NamedTuple):
    transactions: TransactionFlow
    reports: ReportFlow
    categories: CategoryFlow
    notes: NoteFlow
    accounts: AccountStorageInterface
    client: SqlClient
    audit_logger: AuditLogger
    config: LedgerConfig


def create_app_components(
    database_url: Optional[str] = None,
    config: Optional[LedgerConfig] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        database_url: Overrides DATABASE_URL (tests pass a temporary SQLite file)
        config: Overrides the ledger tables loaded from LEDGER_* settings
    """
    client = SqlClient(url=database_url)
    config = config or get_settings().ledger.to_config()

    account_storage = SqlAccountStorage(client)
    transaction_storage = SqlTransactionStorage(client)
    audit_logger = AuditLogger(SqlAuditStorage(client))

    return AppComponents(
        transactions=TransactionFlow(
            transaction_storage=transaction_storage,
            account_storage=account_storage,
            audit_logger=audit_logger,
        ),
        reports=ReportFlow(
            transaction_storage=transaction_storage,
            account_storage=account_storage,
            config=config,
            audit_logger=audit_logger,
        ),
        categories=CategoryFlow(SqlCategoryStorage(client), audit_logger),
        notes=NoteFlow(SqlNoteStorage(client), audit_logger),
        accounts=account_storage,
        client=client,
        audit_logger=audit_logger,
        config=config,
    )
