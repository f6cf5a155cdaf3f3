"""Services package."""

from ledger.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    NoteStorageInterface,
    NotFoundError,
    SqlAccountStorage,
    SqlAuditStorage,
    SqlCategoryStorage,
    SqlClient,
    SqlNoteStorage,
    SqlTransactionStorage,
    StorageError,
    StoreError,
    TransactionStorageInterface,
)

__all__ = [
    # Storage services
    "AccountStorageInterface",
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "ConnectionError",
    "NoteStorageInterface",
    "NotFoundError",
    "SqlAccountStorage",
    "SqlAuditStorage",
    "SqlCategoryStorage",
    "SqlClient",
    "SqlNoteStorage",
    "SqlTransactionStorage",
    "StorageError",
    "StoreError",
    "TransactionStorageInterface",
]
