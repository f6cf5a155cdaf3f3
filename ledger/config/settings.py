"""
Configuration Management for Personal Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger engines never read module-level tables: LedgerSettings
produces an immutable LedgerConfig that is handed to each engine
when it is constructed, so tests can inject their own fixtures.
"""

from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CURRENCY_RATES = {
    "TWD": Decimal("1"),
    "USD": Decimal("32.5"),
    "EUR": Decimal("35.0"),
    "JPY": Decimal("0.21"),
    "CNY": Decimal("4.5"),
    "HKD": Decimal("4.2"),
}

DEFAULT_EXCLUDED_CATEGORIES = [
    "Inter-account transfer",
    "Liability draw",
]


class LedgerConfig(BaseModel):
    """
    Static ledger tables injected into the engines.

    Rates convert one unit of a currency into the reporting currency.
    Initial balances anchor the end of a reconstructed ledger trail.
    """
    model_config = ConfigDict(frozen=True)

    reporting_currency: str = Field(
        default="TWD",
        min_length=3,
        max_length=3,
        description="Currency all reports are expressed in"
    )
    currency_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_RATES),
        description="Approximate rate of each currency to the reporting currency"
    )
    initial_balances: dict[int, Decimal] = Field(
        default_factory=dict,
        description="Historical starting balance per account id"
    )
    ledger_start_date: date = Field(
        default=date(2024, 1, 1),
        description="Date shown on the initial-balance row"
    )
    excluded_categories: tuple[str, ...] = Field(
        default=tuple(DEFAULT_EXCLUDED_CATEGORIES),
        description="Transfer-like category names left out of income/expense totals"
    )
    keyword_limit: int = Field(
        default=15,
        ge=1,
        description="How many keywords the summary returns"
    )

    @field_validator("reporting_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    def rate_for(self, currency: str) -> Optional[Decimal]:
        """Rate to the reporting currency, or None when the table has no entry."""
        code = currency.strip().upper()
        if code == self.reporting_currency:
            return Decimal("1")
        return self.currency_rates.get(code)

    def initial_balance_for(self, account_id: int) -> Decimal:
        """Configured initial balance; accounts without one start at zero."""
        return self.initial_balances.get(account_id, Decimal("0"))


class DatabaseSettings(BaseSettings):
    """SQL store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///ledger.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )


class LedgerSettings(BaseSettings):
    """Ledger tables loaded from the environment (JSON for mappings)."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    reporting_currency: str = Field(
        default="TWD",
        description="Reporting currency code"
    )
    currency_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_RATES),
        description="Static currency rate table"
    )
    initial_balances: dict[int, Decimal] = Field(
        default_factory=dict,
        description="Initial balance per account id"
    )
    ledger_start_date: date = Field(
        default=date(2024, 1, 1),
        description="Start date of the ledger"
    )
    excluded_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_CATEGORIES),
        description="Category names treated as internal transfers"
    )
    keyword_limit: int = Field(
        default=15,
        ge=1,
        le=100,
        description="Number of keywords in the summary"
    )
    default_list_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Default page size for transaction lists"
    )

    def to_config(self) -> LedgerConfig:
        """Freeze the settings into the object the engines consume."""
        return LedgerConfig(
            reporting_currency=self.reporting_currency,
            currency_rates={k.upper(): v for k, v in self.currency_rates.items()},
            initial_balances=dict(self.initial_balances),
            ledger_start_date=self.ledger_start_date,
            excluded_categories=tuple(self.excluded_categories),
            keyword_limit=self.keyword_limit,
        )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Dashboard
    category_top_n: int = Field(
        default=8,
        ge=1,
        le=50,
        description="Categories shown per type before the rest is bucketed"
    )
    seed_demo_data: bool = Field(
        default=False,
        description="Seed default categories and accounts on startup"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
