"""
Report Models

Shapes produced by the read side: the reconstructed ledger of one
account, the dashboard statistics, and the net-worth estimate.
Nothing here is persisted.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from ledger.models.transaction import (
    Account,
    Money,
    SplitLine,
    TransactionType,
)


class LedgerRowType(str, Enum):
    """Row types of a reconstructed ledger. BALANCE marks the sentinel row."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"
    BALANCE = "BALANCE"


class LedgerRow(BaseModel):
    """
    One line of an account ledger.

    running_balance is the accumulator reached at this row while walking
    back from the stored balance: the newest row shows the stored balance
    itself, each older row shows it with every newer row undone.
    """

    id: Optional[int] = None
    date: dt.date
    type: LedgerRowType
    amount_twd: Optional[Money] = None
    running_balance: Money
    category_name: Optional[str] = None
    note: Optional[str] = None
    children: list[SplitLine] = Field(default_factory=list)

    @property
    def is_sentinel(self) -> bool:
        return self.type == LedgerRowType.BALANCE


class LedgerView(BaseModel):
    """
    Reconstructed ledger of one account, newest first.

    The last row is always the initial-balance sentinel.
    """

    account: Account
    rows: list[LedgerRow] = Field(default_factory=list)
    initial_balance: Money
    derived_balance: Money = Field(
        ...,
        description="Initial balance plus the forward effect of every root"
    )
    discrepancy: Money = Field(
        ...,
        description="Stored balance minus derived balance"
    )

    @computed_field
    @property
    def reconciled(self) -> bool:
        return self.discrepancy == 0

    @property
    def sentinel(self) -> LedgerRow:
        return self.rows[-1]


# =============================================================================
# STATISTICS
# =============================================================================

class StatsQuery(BaseModel):
    """Date range and account selection for the dashboard statistics."""

    start: Optional[dt.date] = None
    end: Optional[dt.date] = None
    account_ids: list[int] = Field(
        default_factory=list,
        description="Empty means all accounts"
    )


class TypeTotal(BaseModel):
    type: TransactionType
    total: Money


class MonthlyTotal(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    type: TransactionType
    total: Money


class CategoryTotal(BaseModel):
    name: str
    type: TransactionType
    total: Money


class KeywordTotal(BaseModel):
    name: str
    total: Money


class StatsResult(BaseModel):
    """Everything the dashboard needs for one period."""

    totals: list[TypeTotal] = Field(default_factory=list)
    monthly: list[MonthlyTotal] = Field(default_factory=list)
    categories: list[CategoryTotal] = Field(default_factory=list)
    keywords: list[KeywordTotal] = Field(default_factory=list)

    def total_for(self, tx_type: TransactionType) -> Decimal:
        for row in self.totals:
            if row.type == tx_type:
                return row.total
        return Decimal("0")

    @property
    def income_total(self) -> Decimal:
        return self.total_for(TransactionType.INCOME)

    @property
    def expense_total(self) -> Decimal:
        return self.total_for(TransactionType.EXPENSE)


# =============================================================================
# NET WORTH
# =============================================================================

class AccountValuation(BaseModel):
    account_id: int
    name: str
    currency: str
    balance: Money
    rate: Money
    converted: Money


class NetWorthEstimate(BaseModel):
    """
    Approximate net worth in the reporting currency.

    This is an estimate from a static rate table, not a live conversion.
    """

    currency: str
    total: Money
    breakdown: list[AccountValuation] = Field(default_factory=list)
    unconverted: list[int] = Field(
        default_factory=list,
        description="Selected accounts whose currency has no rate"
    )
