"""Integration tests for the orchestrator flows with a real SQLite store."""

import pytest
from datetime import date
from decimal import Decimal

from ledger.models import (
    CategoryDraft,
    CategoryType,
    StatsQuery,
    TransactionDraft,
    TransactionType,
)
from ledger.models.audit import AuditEventType
from ledger.orchestrator import create_app_components
from ledger.services.storage import NotFoundError, SqlAuditStorage
from ledger.validation import ValidationError


@pytest.fixture
def components(database_url, ledger_config):
    components = create_app_components(database_url=database_url, config=ledger_config)
    yield components
    components.client.dispose()


@pytest.fixture
def audit(components):
    return SqlAuditStorage(components.client)


def draft(account_id, **overrides) -> TransactionDraft:
    fields = {
        "date": date(2025, 1, 10),
        "account_id": account_id,
        "type": TransactionType.EXPENSE,
        "amount_twd": Decimal("300"),
    }
    fields.update(overrides)
    return TransactionDraft(**fields)


class TestTransactionFlow:

    @pytest.mark.asyncio
    async def test_create_returns_root_and_audits(self, components, audit):
        account = await components.accounts.create_account("Bank", balance=Decimal("500"))

        root = await components.transactions.create(draft(account.id))

        assert root.amount_twd == Decimal("300")
        events = await audit.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.TRANSACTION_CREATED]
        assert events[0].entity_id == root.id

    @pytest.mark.asyncio
    async def test_split_mismatch_audited_as_warning(self, components, audit):
        account = await components.accounts.create_account("Bank")

        root = await components.transactions.create(draft(
            account.id, children=[{"amount_twd": "100"}]
        ))

        types = {e.event_type for e in await audit.get_recent_events()}
        assert AuditEventType.SPLIT_MISMATCH_DETECTED in types
        assert len(root.children) == 1

    @pytest.mark.asyncio
    async def test_missing_account_is_validation_error(self, components, audit):
        with pytest.raises(ValidationError) as exc_info:
            await components.transactions.create(draft(999))

        assert "account 999 does not exist" in str(exc_info.value)
        events = await audit.get_recent_events()
        assert events[0].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_update_missing_root(self, components):
        account = await components.accounts.create_account("Bank")
        with pytest.raises(NotFoundError):
            await components.transactions.update(12345, draft(account.id))

    @pytest.mark.asyncio
    async def test_delete_counts_orphans(self, components, audit):
        account = await components.accounts.create_account("Bank")
        root = await components.transactions.create(draft(
            account.id, children=[{"amount_twd": "100"}, {"amount_twd": "200"}]
        ))

        assert await components.transactions.delete(root.id) is True
        assert await components.transactions.delete(root.id) is False

        deleted = [
            e for e in await audit.get_recent_events()
            if e.event_type == AuditEventType.TRANSACTION_DELETED
        ]
        assert deleted[0].details["orphaned_lines"] == 2

    @pytest.mark.asyncio
    async def test_list_attaches_children(self, components):
        account = await components.accounts.create_account("Bank")
        await components.transactions.create(draft(
            account.id, children=[{"amount_twd": "100"}, {"amount_twd": "200"}]
        ))
        await components.transactions.create(draft(account.id, date=date(2025, 1, 1)))

        listed = await components.transactions.list(account_id=account.id)

        assert [len(t.children) for t in listed] == [2, 0]


class TestReportFlow:

    @pytest.mark.asyncio
    async def test_ledger_reconciles_after_writes(self, components):
        """Balance 200 at start, one expense of 300, ledger lands on 200."""
        account = await components.accounts.create_account("Bank", balance=Decimal("200"))
        assert account.id == 1
        await components.transactions.create(draft(account.id))

        view = await components.reports.ledger(account.id)

        assert view.account.balance == Decimal("-100")
        assert view.rows[0].running_balance == Decimal("-100")
        assert view.sentinel.running_balance == Decimal("200")
        assert view.reconciled is True

    @pytest.mark.asyncio
    async def test_ledger_reconciles_with_cent_amounts(self, components, audit):
        """Amounts round-trip exactly, so the stored balance agrees with history."""
        account = await components.accounts.create_account("Bank", balance=Decimal("200"))
        for amount in ("10.01", "0.12", "3.33"):
            await components.transactions.create(draft(account.id, amount_twd=Decimal(amount)))

        view = await components.reports.ledger(account.id)

        assert [r.amount_twd for r in view.rows[:-1]] == [
            Decimal("3.33"), Decimal("0.12"), Decimal("10.01")
        ]
        assert view.account.balance == Decimal("186.54")
        assert view.reconciled is True
        events = await audit.get_recent_events()
        assert AuditEventType.BALANCE_MISMATCH_DETECTED not in {e.event_type for e in events}

    @pytest.mark.asyncio
    async def test_ledger_mismatch_audited(self, components, audit):
        await components.accounts.create_account("Other")
        account = await components.accounts.create_account("Bank", balance=Decimal("1000"))

        view = await components.reports.ledger(account.id)

        assert view.reconciled is False
        events = await audit.get_recent_events()
        assert events[0].event_type == AuditEventType.BALANCE_MISMATCH_DETECTED

    @pytest.mark.asyncio
    async def test_ledger_limit_keeps_sentinel(self, components):
        account = await components.accounts.create_account("Bank", balance=Decimal("200"))
        for day in range(1, 6):
            await components.transactions.create(draft(account.id, date=date(2025, 1, day)))

        view = await components.reports.ledger(account.id, limit=2)

        assert len(view.rows) == 3
        assert view.rows[-1].is_sentinel
        assert view.reconciled is True

    @pytest.mark.asyncio
    async def test_ledger_unknown_account(self, components):
        with pytest.raises(NotFoundError):
            await components.reports.ledger(404)

    @pytest.mark.asyncio
    async def test_stats_respects_range_and_accounts(self, components):
        cash = await components.accounts.create_account("Cash")
        bank = await components.accounts.create_account("Bank")
        await components.transactions.create(draft(cash.id, date=date(2025, 1, 5)))
        await components.transactions.create(draft(cash.id, date=date(2025, 3, 5)))
        await components.transactions.create(draft(bank.id, date=date(2025, 1, 6)))

        result = await components.reports.stats(StatsQuery(
            start=date(2025, 1, 1),
            end=date(2025, 1, 31),
            account_ids=[cash.id],
        ))

        assert result.expense_total == Decimal("300")

    @pytest.mark.asyncio
    async def test_stats_excludes_transfer_category(self, components):
        account = await components.accounts.create_account("Cash")
        move = await components.categories.create(
            CategoryDraft(name="Move", type=CategoryType.TRANSFER)
        )
        await components.transactions.create(draft(account.id, category_id=move.id))

        result = await components.reports.stats(StatsQuery())

        assert result.expense_total == Decimal("0")
        assert result.categories[0].name == "Move"

    @pytest.mark.asyncio
    async def test_net_worth(self, components):
        await components.accounts.create_account("Bank", "TWD", Decimal("1000"))
        usd = await components.accounts.create_account("Brokerage", "USD", Decimal("10"))

        assert (await components.reports.net_worth()).total == Decimal("1300")
        assert (await components.reports.net_worth([usd.id])).total == Decimal("300")


class TestSplitAttachment:

    @pytest.mark.asyncio
    async def test_children_stay_with_their_roots(self, components):
        account = await components.accounts.create_account("Bank")
        for day, count in ((1, 1), (2, 0), (3, 3)):
            await components.transactions.create(draft(
                account.id,
                date=date(2025, 1, day),
                note=f"day {day}",
                children=[{"amount_twd": "100", "note": f"day {day}"}] * count,
            ))

        listed = await components.transactions.list(account_id=account.id)

        assert [t.note for t in listed] == ["day 3", "day 2", "day 1"]
        assert [len(t.children) for t in listed] == [3, 0, 1]
        for root in listed:
            assert {c.note for c in root.children} <= {root.note}
            assert all(c.parent_id == root.id for c in root.children)
