"""
SQL Storage Implementation

DESIGN DECISION: SQLAlchemy Core is used as the storage backend because:
1. SQLite works out of the box for a personal ledger, no server needed
2. The same code runs against PostgreSQL by changing DATABASE_URL
3. engine.begin() gives a real transactional scope for multi-step writes

TRADEOFFS:
- Queries are written by hand against Table objects, there is no ORM
- Decimal amounts round-trip through REAL on SQLite

Every write that touches a root, its split lines and the account balance
runs inside ONE SqlClient.transaction() block: either all of it is
committed or none of it is.
"""

import json
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Optional, Union
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ledger.config import get_settings
from ledger.models.transaction import (
    Account,
    Category,
    CategoryDraft,
    CategoryType,
    RootTransaction,
    SplitLine,
    TransactionDraft,
    TransactionType,
    balance_effect,
)
from ledger.models.note import Note, NoteDraft
from ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from ledger.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    NoteStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from ledger.validation import require_valid


metadata = MetaData()

TYPE_VALUES = "'EXPENSE','INCOME','TRANSFER'"

accounts_table = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("currency", String(3), nullable=False, default="TWD"),
    Column("balance", Numeric(14, 2), nullable=False, default=0),
    sqlite_autoincrement=True,
)

categories_table = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("type", String(10), nullable=False),
    CheckConstraint(f"type IN ({TYPE_VALUES})", name="ck_categories_type"),
    sqlite_autoincrement=True,
)

# parent_id deliberately has no foreign key: deleting a root leaves its lines
transactions_table = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("date", Date, nullable=False, index=True),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False, index=True),
    Column(
        "category_id",
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("type", String(10), nullable=False),
    Column("amount_twd", Numeric(14, 2), nullable=False),
    Column("amount_foreign", Numeric(14, 2), nullable=True),
    Column("exchange_rate", Numeric(18, 6), nullable=True),
    Column("note", Text, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("parent_id", Integer, nullable=True, index=True),
    CheckConstraint(f"type IN ({TYPE_VALUES})", name="ck_transactions_type"),
    sqlite_autoincrement=True,
)

notes_table = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("date", Date, nullable=False),
    Column("title", String(200), nullable=False),
    Column("content", Text, nullable=False, default=""),
    Column("tag", String(50), nullable=False, default="general"),
    Column("created_at", DateTime, nullable=False),
    sqlite_autoincrement=True,
)

audit_log_table = Table(
    "audit_log",
    metadata,
    Column("event_id", String(36), primary_key=True),
    Column("timestamp", DateTime, nullable=False, index=True),
    Column("event_type", String(50), nullable=False),
    Column("severity", String(10), nullable=False),
    Column("entity_type", String(50), nullable=True),
    Column("entity_id", Integer, nullable=True),
    Column("correlation_id", String(36), nullable=True, index=True),
    Column("description", String(500), nullable=False),
    Column("details", JSON, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("is_user_action", Boolean, nullable=False, default=False),
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqlClient:
    """
    Low-level database wrapper.

    Creates the engine lazily, makes sure the schema exists, and hands out
    connections for reads and transactional scopes for writes.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings().database
        self._url = url or settings.url
        self._echo = settings.echo if echo is None else echo
        self._engine: Optional[Engine] = None

    @property
    def url(self) -> str:
        return self._url

    def connect(self) -> Engine:
        """Create the engine and the schema on first use."""
        if self._engine is None:
            connect_args = {}
            engine_kwargs = {}
            if self._url.startswith("sqlite"):
                connect_args["check_same_thread"] = False
                if self._url in ("sqlite://", "sqlite:///:memory:"):
                    # One shared connection, otherwise every checkout sees an empty database
                    engine_kwargs["poolclass"] = StaticPool
            try:
                engine = create_engine(
                    self._url,
                    echo=self._echo,
                    connect_args=connect_args,
                    **engine_kwargs,
                )
                if engine.dialect.name == "sqlite":
                    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
                metadata.create_all(engine)
            except SQLAlchemyError as e:
                raise ConnectionError(f"Failed to connect to database: {e}")
            self._engine = engine

        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Commit on success, roll back on any exception."""
        with self.connect().begin() as conn:
            yield conn

    @contextmanager
    def read(self) -> Iterator[Connection]:
        with self.connect().connect() as conn:
            yield conn

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


# =============================================================================
# ROW CONVERSION
# =============================================================================

def _row_to_account(row) -> Account:
    m = row._mapping
    return Account(
        id=m["id"],
        name=m["name"],
        currency=m["currency"],
        balance=Decimal(str(m["balance"])),
    )


def _row_to_category(row) -> Category:
    m = row._mapping
    return Category(id=m["id"], name=m["name"], type=CategoryType(m["type"]))


def _row_to_root(row, children: Optional[list[SplitLine]] = None) -> RootTransaction:
    m = row._mapping
    return RootTransaction(
        id=m["id"],
        date=m["date"],
        account_id=m["account_id"],
        category_id=m["category_id"],
        category_name=m["category_name"],
        category_type=CategoryType(m["category_type"]) if m["category_type"] else None,
        type=TransactionType(m["type"]),
        amount_twd=m["amount_twd"],
        amount_foreign=m["amount_foreign"],
        exchange_rate=m["exchange_rate"],
        note=m["note"],
        created_at=m["created_at"],
        children=children or [],
    )


def _row_to_line(row) -> SplitLine:
    m = row._mapping
    return SplitLine(
        id=m["id"],
        parent_id=m["parent_id"],
        date=m["date"],
        account_id=m["account_id"],
        category_id=m["category_id"],
        category_name=m["category_name"],
        type=TransactionType(m["type"]),
        amount_twd=m["amount_twd"],
        note=m["note"],
        created_at=m["created_at"],
    )


def _transactions_with_category():
    """transactions LEFT JOIN categories, with the category name and type labelled."""
    t = transactions_table
    c = categories_table
    return select(
        t,
        c.c.name.label("category_name"),
        c.c.type.label("category_type"),
    ).select_from(t.outerjoin(c, t.c.category_id == c.c.id))


# =============================================================================
# STORAGE CLASSES
# =============================================================================

class SqlAccountStorage(AccountStorageInterface):

    def __init__(self, client: Optional[SqlClient] = None):
        self._client = client or SqlClient()

    async def create_account(
        self,
        name: str,
        currency: str = "TWD",
        balance: Decimal = Decimal("0"),
    ) -> Account:
        try:
            with self._client.transaction() as conn:
                account_id = conn.execute(
                    insert(accounts_table).values(
                        name=name,
                        currency=currency.upper(),
                        balance=balance,
                    )
                ).inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return Account(id=account_id, name=name, currency=currency, balance=balance)

    async def get_account(self, account_id: int) -> Optional[Account]:
        try:
            with self._client.read() as conn:
                row = conn.execute(
                    select(accounts_table).where(accounts_table.c.id == account_id)
                ).first()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return _row_to_account(row) if row else None

    async def list_accounts(self) -> list[Account]:
        try:
            with self._client.read() as conn:
                rows = conn.execute(
                    select(accounts_table).order_by(accounts_table.c.id)
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [_row_to_account(row) for row in rows]


class SqlCategoryStorage(CategoryStorageInterface):

    def __init__(self, client: Optional[SqlClient] = None):
        self._client = client or SqlClient()

    async def list_categories(
        self,
        category_type: Optional[CategoryType] = None,
    ) -> list[Category]:
        query = select(categories_table).order_by(categories_table.c.id)
        if category_type is not None:
            query = query.where(categories_table.c.type == category_type.value)

        try:
            with self._client.read() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [_row_to_category(row) for row in rows]

    async def create_category(self, draft: CategoryDraft) -> Category:
        try:
            with self._client.transaction() as conn:
                category_id = conn.execute(
                    insert(categories_table).values(
                        name=draft.name,
                        type=draft.type.value,
                    )
                ).inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return Category(id=category_id, name=draft.name, type=draft.type)

    async def delete_category(self, category_id: int) -> bool:
        try:
            with self._client.transaction() as conn:
                result = conn.execute(
                    delete(categories_table).where(categories_table.c.id == category_id)
                )
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return result.rowcount > 0


class SqlTransactionStorage(TransactionStorageInterface):
    """
    SQL implementation of the transaction store.

    Roots and split lines share one table; a line is any row whose
    parent_id is set. Only roots move account balances.
    """

    def __init__(self, client: Optional[SqlClient] = None):
        self._client = client or SqlClient()

    # -- write helpers, always called inside a transaction() block --

    def _root_values(self, draft: TransactionDraft) -> dict:
        return {
            "date": draft.date,
            "account_id": draft.account_id,
            "category_id": draft.category_id,
            "type": draft.type.value,
            "amount_twd": draft.amount_twd,
            "amount_foreign": draft.amount_foreign,
            "exchange_rate": draft.exchange_rate,
            "note": draft.note,
        }

    def _insert_lines(
        self,
        conn: Connection,
        root_id: int,
        draft: TransactionDraft,
        created_at: datetime,
    ) -> None:
        if not draft.children:
            return
        conn.execute(
            insert(transactions_table),
            [
                {
                    "date": draft.date,
                    "account_id": draft.account_id,
                    "category_id": line.category_id,
                    "type": draft.type.value,
                    "amount_twd": line.amount_twd,
                    "amount_foreign": None,
                    "exchange_rate": None,
                    "note": line.note,
                    "created_at": created_at,
                    "parent_id": root_id,
                }
                for line in draft.children
            ],
        )

    def _adjust_balance(self, conn: Connection, account_id: int, delta: Decimal) -> None:
        result = conn.execute(
            update(accounts_table)
            .where(accounts_table.c.id == account_id)
            .values(balance=accounts_table.c.balance + delta)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Account not found: {account_id}")

    # -- interface --

    async def create_transaction(self, draft: TransactionDraft) -> int:
        require_valid(draft)
        created_at = datetime.utcnow()

        try:
            with self._client.transaction() as conn:
                self._adjust_balance(
                    conn, draft.account_id, balance_effect(draft.type, draft.amount_twd)
                )
                root_id = conn.execute(
                    insert(transactions_table).values(
                        **self._root_values(draft),
                        created_at=created_at,
                        parent_id=None,
                    )
                ).inserted_primary_key[0]
                self._insert_lines(conn, root_id, draft, created_at)
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return root_id

    async def update_transaction(
        self,
        transaction_id: int,
        draft: TransactionDraft,
    ) -> None:
        require_valid(draft)
        t = transactions_table

        try:
            with self._client.transaction() as conn:
                old = conn.execute(
                    select(t).where(t.c.id == transaction_id, t.c.parent_id.is_(None))
                ).first()
                if old is None:
                    raise NotFoundError(f"Transaction not found: {transaction_id}")

                # Undo the old root on its old account, then apply the new one
                self._adjust_balance(
                    conn,
                    old.account_id,
                    -balance_effect(TransactionType(old.type), Decimal(str(old.amount_twd))),
                )
                self._adjust_balance(
                    conn, draft.account_id, balance_effect(draft.type, draft.amount_twd)
                )

                conn.execute(
                    update(t).where(t.c.id == transaction_id).values(**self._root_values(draft))
                )
                conn.execute(delete(t).where(t.c.parent_id == transaction_id))
                self._insert_lines(conn, transaction_id, draft, datetime.utcnow())
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    async def delete_transaction(self, transaction_id: int) -> bool:
        t = transactions_table

        try:
            with self._client.transaction() as conn:
                row = conn.execute(select(t).where(t.c.id == transaction_id)).first()
                if row is None:
                    return False

                conn.execute(delete(t).where(t.c.id == transaction_id))
                if row.parent_id is None:
                    self._adjust_balance(
                        conn,
                        row.account_id,
                        -balance_effect(TransactionType(row.type), Decimal(str(row.amount_twd))),
                    )
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return True

    async def get_transaction(
        self,
        transaction_id: int,
    ) -> Optional[Union[RootTransaction, SplitLine]]:
        t = transactions_table

        try:
            with self._client.read() as conn:
                row = conn.execute(
                    _transactions_with_category().where(t.c.id == transaction_id)
                ).first()
                if row is None:
                    return None
                if row.parent_id is not None:
                    return _row_to_line(row)

                lines = conn.execute(
                    _transactions_with_category()
                    .where(t.c.parent_id == transaction_id)
                    .order_by(t.c.id.asc())
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return _row_to_root(row, [_row_to_line(line) for line in lines])

    async def list_transactions(
        self,
        account_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[RootTransaction]:
        t = transactions_table
        query = (
            _transactions_with_category()
            .where(t.c.parent_id.is_(None))
            .order_by(t.c.date.desc(), t.c.created_at.desc(), t.c.id.desc())
        )
        if account_id is not None:
            query = query.where(t.c.account_id == account_id)
        if limit is not None:
            query = query.limit(limit)

        try:
            with self._client.read() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [_row_to_root(row) for row in rows]

    async def list_split_lines(self, parent_id: int) -> list[SplitLine]:
        t = transactions_table

        try:
            with self._client.read() as conn:
                rows = conn.execute(
                    _transactions_with_category()
                    .where(t.c.parent_id == parent_id)
                    .order_by(t.c.id.asc())
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [_row_to_line(row) for row in rows]

    async def list_roots_in_period(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        account_ids: Optional[list[int]] = None,
    ) -> list[RootTransaction]:
        t = transactions_table
        query = (
            _transactions_with_category()
            .where(t.c.parent_id.is_(None))
            .order_by(t.c.date.asc(), t.c.id.asc())
        )
        if date_from is not None:
            query = query.where(t.c.date >= date_from)
        if date_to is not None:
            query = query.where(t.c.date <= date_to)
        if account_ids:
            query = query.where(t.c.account_id.in_(account_ids))

        try:
            with self._client.read() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [_row_to_root(row) for row in rows]


class SqlNoteStorage(NoteStorageInterface):

    def __init__(self, client: Optional[SqlClient] = None):
        self._client = client or SqlClient()

    def _values(self, draft: NoteDraft) -> dict:
        return {
            "date": draft.date,
            "title": draft.title or "Untitled",
            "content": draft.content or "",
            "tag": draft.tag or "general",
        }

    async def list_notes(self) -> list[Note]:
        n = notes_table
        try:
            with self._client.read() as conn:
                rows = conn.execute(
                    select(n).order_by(n.c.date.desc(), n.c.created_at.desc(), n.c.id.desc())
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return [Note(**row._mapping) for row in rows]

    async def create_note(self, draft: NoteDraft) -> int:
        try:
            with self._client.transaction() as conn:
                return conn.execute(
                    insert(notes_table).values(
                        **self._values(draft),
                        created_at=datetime.utcnow(),
                    )
                ).inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    async def update_note(self, note_id: int, draft: NoteDraft) -> bool:
        try:
            with self._client.transaction() as conn:
                result = conn.execute(
                    update(notes_table)
                    .where(notes_table.c.id == note_id)
                    .values(**self._values(draft))
                )
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return result.rowcount > 0

    async def delete_note(self, note_id: int) -> bool:
        try:
            with self._client.transaction() as conn:
                result = conn.execute(delete(notes_table).where(notes_table.c.id == note_id))
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

        return result.rowcount > 0


class SqlAuditStorage(AuditStorageInterface):
    """
    SQL implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[SqlClient] = None):
        self._client = client or SqlClient()

    def _row_to_event(self, row) -> AuditEvent:
        m = row._mapping
        return AuditEvent(
            event_id=UUID(m["event_id"]),
            timestamp=m["timestamp"],
            event_type=AuditEventType(m["event_type"]),
            severity=AuditSeverity(m["severity"]),
            entity_type=m["entity_type"],
            entity_id=m["entity_id"],
            correlation_id=UUID(m["correlation_id"]) if m["correlation_id"] else None,
            description=m["description"],
            details=m["details"] or {},
            error_message=m["error_message"],
            is_user_action=m["is_user_action"],
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Never raises: audit must not break the main flow."""
        try:
            with self._client.transaction() as conn:
                conn.execute(
                    insert(audit_log_table).values(
                        event_id=str(event.event_id),
                        timestamp=event.timestamp,
                        event_type=event.event_type.value,
                        severity=event.severity.value,
                        entity_type=event.entity_type,
                        entity_id=event.entity_id,
                        correlation_id=str(event.correlation_id) if event.correlation_id else None,
                        description=event.description,
                        details=json.loads(json.dumps(event.details, default=str)),
                        error_message=event.error_message,
                        is_user_action=event.is_user_action,
                    )
                )
            return True
        except SQLAlchemyError:
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        a = audit_log_table
        try:
            with self._client.read() as conn:
                rows = conn.execute(
                    select(a)
                    .where(a.c.correlation_id == str(correlation_id))
                    .order_by(a.c.timestamp.asc())
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        return [self._row_to_event(row) for row in rows]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        a = audit_log_table
        try:
            with self._client.read() as conn:
                rows = conn.execute(
                    select(a).order_by(a.c.timestamp.desc()).limit(limit)
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        return [self._row_to_event(row) for row in rows]
