"""Shared fixtures: a throwaway SQLite store and ledger configuration."""

import pytest
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ledger.config import LedgerConfig
from ledger.models import CategoryType, RootTransaction, TransactionType
from ledger.services.storage import SqlClient


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def sql_client(database_url):
    client = SqlClient(url=database_url)
    yield client
    client.dispose()


@pytest.fixture
def ledger_config():
    return LedgerConfig(
        reporting_currency="TWD",
        currency_rates={"TWD": Decimal("1"), "USD": Decimal("30")},
        initial_balances={1: Decimal("200")},
        ledger_start_date=date(2024, 1, 1),
        excluded_categories=("Inter-account transfer", "Liability draw"),
        keyword_limit=15,
    )


@pytest.fixture
def make_root():
    """Factory for in-memory root transactions used by the engine tests."""
    counter = {"id": 0}

    def _make(
        amount: str,
        tx_type: TransactionType = TransactionType.EXPENSE,
        on: date = date(2025, 1, 15),
        category_name: Optional[str] = "Food",
        category_type: Optional[CategoryType] = CategoryType.EXPENSE,
        note: Optional[str] = None,
        account_id: int = 1,
    ) -> RootTransaction:
        counter["id"] += 1
        return RootTransaction(
            id=counter["id"],
            date=on,
            account_id=account_id,
            category_id=None,
            category_name=category_name,
            category_type=category_type,
            type=tx_type,
            amount_twd=Decimal(amount),
            note=note,
            created_at=datetime(on.year, on.month, on.day, 12, 0),
        )

    return _make
