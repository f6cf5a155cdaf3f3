"""
Aggregation Engine

Computes the dashboard statistics from root transactions:
- totals per type
- monthly series per (month, type)
- category breakdown per (category, type)
- keyword summary over notes

EXCLUSION RULE: money moved between the user's own accounts must not
inflate income or expense. Totals and the monthly series drop every
transaction whose category name is in the configured exclusion list or
whose category type is TRANSFER. The category breakdown keeps everything.

The engine is deterministic and works on whatever rows it is handed;
the caller restricts them to the date range and account set.
"""

import re
from collections import defaultdict
from decimal import Decimal

from ledger.config import LedgerConfig
from ledger.models.report import (
    CategoryTotal,
    KeywordTotal,
    MonthlyTotal,
    StatsResult,
    TypeTotal,
)
from ledger.models.transaction import (
    CategoryType,
    RootTransaction,
    TransactionType,
)


UNCATEGORIZED = "Uncategorized"

# Half- and full-width brackets users wrap around notes
BRACKETS_RE = re.compile(r"[\[\]()（）【】「」『』{}<>《》]")
NUMERIC_RE = re.compile(r"[\d\s.,+\-]+")

_TYPE_ORDER = {t: i for i, t in enumerate(TransactionType)}


class AggregationEngine:
    """Deterministic aggregation over root transactions."""

    def __init__(self, config: LedgerConfig):
        self._config = config
        self._excluded = frozenset(config.excluded_categories)

    def is_excluded(self, tx: RootTransaction) -> bool:
        """True for internal transfers that must not count as income or expense."""
        if tx.category_name is not None and tx.category_name in self._excluded:
            return True
        return tx.category_type == CategoryType.TRANSFER

    def totals(self, transactions: list[RootTransaction]) -> list[TypeTotal]:
        sums: dict[TransactionType, Decimal] = defaultdict(Decimal)
        for tx in transactions:
            if self.is_excluded(tx):
                continue
            sums[tx.type] += tx.amount_twd

        return [
            TypeTotal(type=tx_type, total=sums[tx_type])
            for tx_type in sorted(sums, key=_TYPE_ORDER.__getitem__)
        ]

    def monthly(self, transactions: list[RootTransaction]) -> list[MonthlyTotal]:
        sums: dict[tuple[str, TransactionType], Decimal] = defaultdict(Decimal)
        for tx in transactions:
            if self.is_excluded(tx):
                continue
            sums[(tx.date.strftime("%Y-%m"), tx.type)] += tx.amount_twd

        keys = sorted(sums, key=lambda k: (k[0], _TYPE_ORDER[k[1]]))
        return [
            MonthlyTotal(month=month, type=tx_type, total=sums[(month, tx_type)])
            for month, tx_type in keys
        ]

    def categories(self, transactions: list[RootTransaction]) -> list[CategoryTotal]:
        """Every category, transfers included, largest total first."""
        sums: dict[tuple[str, TransactionType], Decimal] = defaultdict(Decimal)
        for tx in transactions:
            sums[(tx.category_name or UNCATEGORIZED, tx.type)] += tx.amount_twd

        rows = [
            CategoryTotal(name=name, type=tx_type, total=total)
            for (name, tx_type), total in sums.items()
        ]
        rows.sort(key=lambda r: (-r.total, r.name))
        return rows

    def keywords(self, transactions: list[RootTransaction]) -> list[KeywordTotal]:
        """
        Sum amounts per distinct note.

        Brackets are stripped and whitespace trimmed; nothing else is
        normalized. Empty and purely numeric notes are dropped.
        """
        sums: dict[str, Decimal] = defaultdict(Decimal)
        for tx in transactions:
            if not tx.note or tx.type == TransactionType.TRANSFER or self.is_excluded(tx):
                continue
            name = BRACKETS_RE.sub("", tx.note).strip()
            if not name or NUMERIC_RE.fullmatch(name):
                continue
            sums[name] += tx.amount_twd

        rows = [KeywordTotal(name=name, total=total) for name, total in sums.items()]
        rows.sort(key=lambda r: (-r.total, r.name))
        return rows[: self._config.keyword_limit]

    def summarize(self, transactions: list[RootTransaction]) -> StatsResult:
        return StatsResult(
            totals=self.totals(transactions),
            monthly=self.monthly(transactions),
            categories=self.categories(transactions),
            keywords=self.keywords(transactions),
        )
