"""Tests for the static-rate net-worth estimate."""

from decimal import Decimal

from ledger.config import LedgerConfig
from ledger.models import Account
from ledger.queries import NetWorthEstimator


ACCOUNTS = [
    Account(id=1, name="Bank", currency="TWD", balance=Decimal("1000")),
    Account(id=2, name="Brokerage", currency="USD", balance=Decimal("100")),
    Account(id=3, name="Crypto", currency="XBT", balance=Decimal("2")),
]


class TestNetWorthEstimator:

    def test_all_accounts_by_default(self, ledger_config):
        estimate = NetWorthEstimator(ledger_config).estimate(ACCOUNTS)

        assert estimate.currency == "TWD"
        assert estimate.total == Decimal("4000")
        assert [v.account_id for v in estimate.breakdown] == [1, 2]
        assert estimate.breakdown[1].converted == Decimal("3000")

    def test_unknown_currency_is_left_out(self, ledger_config):
        estimate = NetWorthEstimator(ledger_config).estimate(ACCOUNTS)
        assert estimate.unconverted == [3]

    def test_selection(self, ledger_config):
        estimate = NetWorthEstimator(ledger_config).estimate(ACCOUNTS, [2])
        assert estimate.total == Decimal("3000")
        assert estimate.unconverted == []

    def test_empty_selection_means_all(self, ledger_config):
        estimate = NetWorthEstimator(ledger_config).estimate(ACCOUNTS, [])
        assert estimate.total == Decimal("4000")

    def test_reporting_currency_always_rate_one(self):
        config = LedgerConfig(reporting_currency="usd", currency_rates={})
        estimate = NetWorthEstimator(config).estimate(ACCOUNTS)
        assert estimate.currency == "USD"
        assert estimate.total == Decimal("100")
        assert estimate.unconverted == [1, 3]
