"""
Seed default categories and sample accounts.

Usage:
    python -m app.seed

Only an empty store is seeded; running it twice is harmless.
"""

import asyncio
from decimal import Decimal

from ledger.audit import get_logger
from ledger.models import CategoryDraft, CategoryType
from ledger.orchestrator import AppComponents, create_app_components


logger = get_logger(__name__)

DEFAULT_CATEGORIES = [
    ("Food", CategoryType.EXPENSE),
    ("Transport", CategoryType.EXPENSE),
    ("Housing", CategoryType.EXPENSE),
    ("Utilities", CategoryType.EXPENSE),
    ("Entertainment", CategoryType.EXPENSE),
    ("Medical", CategoryType.EXPENSE),
    ("Salary", CategoryType.INCOME),
    ("Bonus", CategoryType.INCOME),
    ("Investment", CategoryType.INCOME),
]

SAMPLE_ACCOUNTS = [
    ("Cash", "TWD"),
    ("Bank", "TWD"),
    ("USD Savings", "USD"),
]


async def seed(components: AppComponents) -> bool:
    """Create defaults unless categories or accounts already exist."""
    if await components.categories.list() or await components.accounts.list_accounts():
        logger.info("seed_skipped", reason="store not empty")
        return False

    excluded = components.config.excluded_categories
    drafts = [CategoryDraft(name=name, type=t) for name, t in DEFAULT_CATEGORIES]
    drafts += [CategoryDraft(name=name, type=CategoryType.TRANSFER) for name in excluded]
    for draft in drafts:
        await components.categories.create(draft)

    for name, currency in SAMPLE_ACCOUNTS:
        await components.accounts.create_account(name, currency, Decimal("0"))

    logger.info("seed_completed", categories=len(drafts), accounts=len(SAMPLE_ACCOUNTS))
    return True


def main() -> None:
    asyncio.run(seed(create_app_components()))


if __name__ == "__main__":
    main()
