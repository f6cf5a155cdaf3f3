"""
Core Data Models for Personal Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage, logging and the JSON API

DESIGN DECISION: A root transaction and a split line are two different
shapes. A SplitLine has no children and a RootTransaction has no parent,
so the one-level decomposition is structural rather than a convention.
"""

import datetime as dt
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


# Amounts stay Decimal in Python and become plain numbers in JSON
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Input amounts must fit the NUMERIC(14, 2) / NUMERIC(18, 6) columns exactly
Cents = Annotated[Decimal, Field(max_digits=14, decimal_places=2)]
Rate = Annotated[Decimal, Field(max_digits=18, decimal_places=6)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Stored transaction types.

    Only these three are ever persisted. The UI-only "transfer in"
    entry is mapped to INCOME before it reaches the store.
    """
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"


class CategoryType(str, Enum):
    """Category classification, used to filter selectable categories."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"


def balance_effect(tx_type: TransactionType, amount: Decimal) -> Decimal:
    """
    Forward effect of a root transaction on its account balance.

    INCOME adds, EXPENSE and TRANSFER subtract.
    """
    if tx_type == TransactionType.INCOME:
        return amount
    return -amount


# =============================================================================
# ACCOUNTS & CATEGORIES
# =============================================================================

class Account(BaseModel):
    """
    A money container in its own currency.

    The balance is maintained by the store in the same transactional
    scope as every write that moves it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    currency: str = Field(
        default="TWD",
        min_length=3,
        max_length=3,
        description="ISO currency code"
    )
    balance: Money = Field(
        default=Decimal("0"),
        description="Current stored balance"
    )

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class Category(BaseModel):
    """A named classification with a closed type tag."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType


class CategoryDraft(BaseModel):
    """Input for creating a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.EXPENSE


# =============================================================================
# WRITE MODELS
# =============================================================================

class SplitLineDraft(BaseModel):
    """
    One component of a root transaction as submitted by a client.

    Date, account and type are inherited from the root on write.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: Optional[int] = None
    amount_twd: Optional[Cents] = None
    note: Optional[str] = Field(default=None, max_length=500)


class TransactionDraft(BaseModel):
    """
    A root transaction plus its split lines, as submitted for create/update.

    All fields are optional here on purpose: required-field checks are
    done by the validator so that a missing date, account or amount is
    reported as a ValidationError rather than a schema failure.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[dt.date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    type: TransactionType = TransactionType.EXPENSE
    amount_twd: Optional[Cents] = None
    amount_foreign: Optional[Cents] = None
    exchange_rate: Optional[Rate] = None
    note: Optional[str] = Field(default=None, max_length=500)
    children: list[SplitLineDraft] = Field(default_factory=list)

    @property
    def split_total(self) -> Decimal:
        return sum(
            (line.amount_twd for line in self.children if line.amount_twd is not None),
            Decimal("0"),
        )


# =============================================================================
# READ MODELS
# =============================================================================

class SplitLine(BaseModel):
    """A child line item. Belongs to exactly one root."""

    id: int
    parent_id: int
    date: dt.date
    account_id: int
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    type: TransactionType
    amount_twd: Money
    note: Optional[str] = None
    created_at: datetime


class RootTransaction(BaseModel):
    """
    A transaction with no parent.

    CRITICAL: amount_twd is the authoritative total, even when split
    lines exist. Lines are informational and never move balances.
    """

    id: int
    date: dt.date
    account_id: int
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    category_type: Optional[CategoryType] = None
    type: TransactionType
    amount_twd: Money
    amount_foreign: Optional[Money] = None
    exchange_rate: Optional[Money] = None
    note: Optional[str] = None
    created_at: datetime
    children: list[SplitLine] = Field(default_factory=list)

    @property
    def split_total(self) -> Decimal:
        return sum((line.amount_twd for line in self.children), Decimal("0"))

    @property
    def has_split_mismatch(self) -> bool:
        """True when lines exist and do not add up to the root amount."""
        return bool(self.children) and self.split_total != self.amount_twd

    @property
    def balance_effect(self) -> Decimal:
        """Forward effect on the owning account's balance."""
        return balance_effect(self.type, self.amount_twd)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'split_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a TransactionDraft."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    is_valid: bool = Field(
        ...,
        description="No error-level issues were found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
