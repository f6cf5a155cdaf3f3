"""
Net-Worth Estimator

Converts account balances into the reporting currency with the static
rate table from LedgerConfig and adds them up. This is an estimate:
there is no live rate, no timestamp and no historical lookup.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from ledger.config import LedgerConfig
from ledger.models.report import AccountValuation, NetWorthEstimate
from ledger.models.transaction import Account


logger = structlog.get_logger(__name__)


class NetWorthEstimator:

    def __init__(self, config: LedgerConfig):
        self._config = config

    def estimate(
        self,
        accounts: list[Account],
        selected_ids: Optional[Iterable[int]] = None,
    ) -> NetWorthEstimate:
        """
        Sum balance x rate over the selected accounts.

        An empty or missing selection means every account. Accounts whose
        currency has no rate are listed in `unconverted` and left out of
        the total rather than guessed.
        """
        selected = set(selected_ids or ())
        if selected:
            accounts = [a for a in accounts if a.id in selected]

        total = Decimal("0")
        breakdown = []
        unconverted = []

        for account in accounts:
            rate = self._config.rate_for(account.currency)
            if rate is None:
                logger.warning(
                    "net_worth_missing_rate",
                    account_id=account.id,
                    currency=account.currency,
                )
                unconverted.append(account.id)
                continue

            converted = account.balance * rate
            total += converted
            breakdown.append(AccountValuation(
                account_id=account.id,
                name=account.name,
                currency=account.currency,
                balance=account.balance,
                rate=rate,
                converted=converted,
            ))

        return NetWorthEstimate(
            currency=self._config.reporting_currency,
            total=total,
            breakdown=breakdown,
            unconverted=unconverted,
        )
