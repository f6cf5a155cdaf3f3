"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements SQLAlchemy Core as the backend, but designed to be swappable.
"""

from ledger.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    NoteStorageInterface,
    NotFoundError,
    StorageError,
    StoreError,
    TransactionStorageInterface,
)
from ledger.services.storage.sql_store import (
    SqlAccountStorage,
    SqlAuditStorage,
    SqlCategoryStorage,
    SqlClient,
    SqlNoteStorage,
    SqlTransactionStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "NoteStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "StoreError",
    # SQL implementation
    "SqlAccountStorage",
    "SqlAuditStorage",
    "SqlCategoryStorage",
    "SqlClient",
    "SqlNoteStorage",
    "SqlTransactionStorage",
]
