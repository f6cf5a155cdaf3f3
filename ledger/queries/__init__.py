"""Read-side query package: split resolution, ledger replay, statistics, net worth."""

from ledger.queries.aggregation import AggregationEngine
from ledger.queries.networth import NetWorthEstimator
from ledger.queries.reconstructor import LedgerReconstructor
from ledger.queries.splits import SplitResolver

__all__ = [
    "AggregationEngine",
    "LedgerReconstructor",
    "NetWorthEstimator",
    "SplitResolver",
]
