"""
Data Models Package

This package contains all Pydantic models used in the Personal Ledger system.
All data flowing through the system must conform to these schemas.
"""

from ledger.models.transaction import (
    Account,
    Category,
    CategoryDraft,
    CategoryType,
    Cents,
    Money,
    Rate,
    RootTransaction,
    SplitLine,
    SplitLineDraft,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    balance_effect,
)
from ledger.models.report import (
    AccountValuation,
    CategoryTotal,
    KeywordTotal,
    LedgerRow,
    LedgerRowType,
    LedgerView,
    MonthlyTotal,
    NetWorthEstimate,
    StatsQuery,
    StatsResult,
    TypeTotal,
)
from ledger.models.note import Note, NoteDraft
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "Category",
    "CategoryDraft",
    "CategoryType",
    "Cents",
    "Money",
    "Rate",
    "RootTransaction",
    "SplitLine",
    "SplitLineDraft",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "balance_effect",
    # Report models
    "AccountValuation",
    "CategoryTotal",
    "KeywordTotal",
    "LedgerRow",
    "LedgerRowType",
    "LedgerView",
    "MonthlyTotal",
    "NetWorthEstimate",
    "StatsQuery",
    "StatsResult",
    "TypeTotal",
    # Notes
    "Note",
    "NoteDraft",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
