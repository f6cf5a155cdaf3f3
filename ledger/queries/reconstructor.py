"""
Ledger Reconstructor

Rebuilds the running balance of one account by replaying its history
backward from the stored balance.

ALGORITHM:
1. Start an accumulator at the account's stored balance
2. Walk root transactions newest first; each row shows the accumulator,
   then the accumulator is moved back past that transaction
   (INCOME is subtracted, EXPENSE and TRANSFER are added back)
3. Append a BALANCE sentinel showing the configured initial balance

Only roots move the accumulator: the root amount is the canonical total,
split lines are carried along for display only.

The walk itself has no self-check, so the view also reports how far the
accumulator ended from the initial balance. Zero means the stored balance
agrees with history.
"""

from decimal import Decimal
from typing import Optional

import structlog

from ledger.config import LedgerConfig
from ledger.models.report import LedgerRow, LedgerRowType, LedgerView
from ledger.models.transaction import Account, RootTransaction


logger = structlog.get_logger(__name__)


class LedgerReconstructor:
    """
    Reverse-replays account history.

    The initial-balance table and the ledger start date come from the
    injected LedgerConfig.
    """

    def __init__(self, config: LedgerConfig):
        self._config = config

    def replay(
        self,
        current_balance: Decimal,
        transactions: list[RootTransaction],
        initial_balance: Decimal,
    ) -> tuple[list[LedgerRow], Decimal]:
        """
        Annotate transactions (newest first) with running balances.

        Returns:
            (rows including the trailing sentinel, accumulator after the oldest row)
        """
        running = current_balance
        rows = []

        for tx in transactions:
            rows.append(LedgerRow(
                id=tx.id,
                date=tx.date,
                type=LedgerRowType(tx.type.value),
                amount_twd=tx.amount_twd,
                running_balance=running,
                category_name=tx.category_name,
                note=tx.note,
                children=tx.children,
            ))
            running -= tx.balance_effect

        rows.append(LedgerRow(
            date=self._config.ledger_start_date,
            type=LedgerRowType.BALANCE,
            amount_twd=None,
            running_balance=initial_balance,
            note="Initial balance",
        ))

        return rows, running

    def reconstruct(
        self,
        account: Account,
        transactions: list[RootTransaction],
        initial_balance: Optional[Decimal] = None,
    ) -> LedgerView:
        """Build the full ledger view of one account."""
        if initial_balance is None:
            initial_balance = self._config.initial_balance_for(account.id)

        rows, trail_end = self.replay(account.balance, transactions, initial_balance)
        discrepancy = trail_end - initial_balance

        if discrepancy != 0:
            logger.warning(
                "ledger_trail_mismatch",
                account_id=account.id,
                stored_balance=str(account.balance),
                trail_end=str(trail_end),
                initial_balance=str(initial_balance),
            )

        return LedgerView(
            account=account,
            rows=rows,
            initial_balance=initial_balance,
            derived_balance=account.balance - discrepancy,
            discrepancy=discrepancy,
        )
