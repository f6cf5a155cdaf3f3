"""
Presentation-layer mappings.

Entry kinds the UI offers are a superset of what the store persists:
TRANSFER_IN exists only to pre-select a transfer-style category and is
always stored as INCOME. Dashboard trimming of the category breakdown
also lives here, the core engine returns every category.
"""

from collections import defaultdict
from decimal import Decimal
from enum import Enum

from ledger.models import CategoryTotal, CategoryType, TransactionType


OTHER_BUCKET = "Other"


class EntryType(str, Enum):
    """Transaction kinds a client can submit."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"
    TRANSFER_IN = "TRANSFER_IN"


_STORED_TYPE = {
    EntryType.EXPENSE: TransactionType.EXPENSE,
    EntryType.INCOME: TransactionType.INCOME,
    EntryType.TRANSFER: TransactionType.TRANSFER,
    EntryType.TRANSFER_IN: TransactionType.INCOME,
}

_CATEGORY_TYPE = {
    EntryType.EXPENSE: CategoryType.EXPENSE,
    EntryType.INCOME: CategoryType.INCOME,
    EntryType.TRANSFER: CategoryType.TRANSFER,
    EntryType.TRANSFER_IN: CategoryType.TRANSFER,
}


def to_stored_type(entry_type: EntryType) -> TransactionType:
    return _STORED_TYPE[entry_type]


def category_type_for(entry_type: EntryType) -> CategoryType:
    """Which categories are selectable for an entry kind."""
    return _CATEGORY_TYPE[entry_type]


def top_categories(categories: list[CategoryTotal], top_n: int) -> list[CategoryTotal]:
    """
    Keep the `top_n` largest categories of each type and fold the rest
    into one "Other" row per type.

    Input is expected largest-first, as the aggregation engine returns it.
    """
    kept = []
    rest: dict[TransactionType, Decimal] = defaultdict(Decimal)
    seen: dict[TransactionType, int] = defaultdict(int)

    for row in categories:
        if seen[row.type] < top_n:
            kept.append(row)
            seen[row.type] += 1
        else:
            rest[row.type] += row.total

    for tx_type in TransactionType:
        if tx_type in rest:
            kept.append(CategoryTotal(name=OTHER_BUCKET, type=tx_type, total=rest[tx_type]))

    return kept
