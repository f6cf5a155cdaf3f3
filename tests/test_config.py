"""Tests for settings loading and the injected ledger configuration."""

from datetime import date
from decimal import Decimal

import pytest

from ledger.config import (
    DatabaseSettings,
    LedgerConfig,
    LedgerSettings,
    get_settings,
    validate_all_settings,
)


class TestLedgerConfig:

    def test_defaults(self):
        config = LedgerConfig()
        assert config.reporting_currency == "TWD"
        assert config.keyword_limit == 15
        assert "Inter-account transfer" in config.excluded_categories

    def test_rate_lookup_is_case_insensitive(self):
        config = LedgerConfig(currency_rates={"USD": Decimal("30")})
        assert config.rate_for("usd") == Decimal("30")
        assert config.rate_for("TWD") == Decimal("1")
        assert config.rate_for("GBP") is None

    def test_frozen(self):
        with pytest.raises(ValueError):
            LedgerConfig().keyword_limit = 3


class TestSettings:

    def test_ledger_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("LEDGER_INITIAL_BALANCES", '{"1": "200", "2": "0"}')
        monkeypatch.setenv("LEDGER_CURRENCY_RATES", '{"usd": "31"}')
        monkeypatch.setenv("LEDGER_LEDGER_START_DATE", "2023-06-01")
        monkeypatch.setenv("LEDGER_KEYWORD_LIMIT", "5")

        config = LedgerSettings().to_config()

        assert config.initial_balance_for(1) == Decimal("200")
        assert config.initial_balance_for(3) == Decimal("0")
        assert config.rate_for("USD") == Decimal("31")
        assert config.ledger_start_date == date(2023, 6, 1)
        assert config.keyword_limit == 5

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
        assert DatabaseSettings().url == "sqlite:///other.db"

    def test_validate_all_settings(self):
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["database"] is True
        assert results["ledger"] is True
        assert results["app"] is True
