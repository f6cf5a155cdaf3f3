"""
Tests for Personal Ledger

Test strategy:
1. Unit tests for individual components (models, validators, engines)
2. Integration tests for storage and flows against a temporary SQLite file
3. API tests through FastAPI's TestClient, no server and no network
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from ledger.models import (
    Account,
    CategoryDraft,
    CategoryType,
    LedgerRow,
    LedgerRowType,
    LedgerView,
    RootTransaction,
    SplitLine,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    balance_effect,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def make_line(line_id: int, parent_id: int, amount: str) -> SplitLine:
    return SplitLine(
        id=line_id,
        parent_id=parent_id,
        date=date(2025, 1, 1),
        account_id=1,
        type=TransactionType.EXPENSE,
        amount_twd=Decimal(amount),
        created_at=datetime(2025, 1, 1, 12, 0),
    )


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_account_uppercases_currency(self):
        """Test that currency codes are normalized."""
        account = Account(id=1, name="  Wallet  ", currency="usd")
        assert account.currency == "USD"
        assert account.name == "Wallet"
        assert account.balance == Decimal("0")

    def test_account_rejects_bad_currency(self):
        """Test that a currency code must be three letters."""
        with pytest.raises(ValueError):
            Account(id=1, name="Wallet", currency="DOLLAR")

    def test_category_draft_defaults_to_expense(self):
        draft = CategoryDraft(name="Food")
        assert draft.type == CategoryType.EXPENSE

    def test_draft_accepts_missing_required_fields(self):
        """Missing fields are the validator's job, not the schema's."""
        draft = TransactionDraft()
        assert draft.date is None
        assert draft.amount_twd is None
        assert draft.children == []

    def test_draft_split_total_skips_missing_amounts(self):
        draft = TransactionDraft(
            amount_twd=Decimal("100"),
            children=[{"amount_twd": "60"}, {"amount_twd": None}, {"amount_twd": "30"}],
        )
        assert draft.split_total == Decimal("90")

    def test_draft_rejects_sub_cent_amounts(self):
        """Amounts must fit the stored precision instead of being rounded later."""
        with pytest.raises(ValueError):
            TransactionDraft(amount_twd=Decimal("10.005"))
        with pytest.raises(ValueError):
            TransactionDraft(amount_twd=Decimal("10"), children=[{"amount_twd": "0.125"}])
        with pytest.raises(ValueError):
            TransactionDraft(amount_foreign=Decimal("1.001"))

    def test_draft_accepts_cents_and_six_place_rates(self):
        draft = TransactionDraft(
            amount_twd=Decimal("10.01"),
            amount_foreign=Decimal("0.31"),
            exchange_rate=Decimal("32.291234"),
        )
        assert draft.amount_twd == Decimal("10.01")
        assert draft.exchange_rate == Decimal("32.291234")

    def test_root_split_mismatch(self):
        """Test has_split_mismatch property."""
        root = RootTransaction(
            id=1,
            date=date(2025, 1, 1),
            account_id=1,
            type=TransactionType.EXPENSE,
            amount_twd=Decimal("100"),
            created_at=datetime(2025, 1, 1, 12, 0),
            children=[make_line(2, 1, "60"), make_line(3, 1, "30")],
        )
        assert root.split_total == Decimal("90")
        assert root.has_split_mismatch is True

    def test_root_without_lines_has_no_mismatch(self):
        root = RootTransaction(
            id=1,
            date=date(2025, 1, 1),
            account_id=1,
            type=TransactionType.EXPENSE,
            amount_twd=Decimal("100"),
            created_at=datetime(2025, 1, 1, 12, 0),
        )
        assert root.has_split_mismatch is False

    def test_amounts_serialize_as_numbers(self):
        """Test that Decimal amounts become plain JSON numbers."""
        root = RootTransaction(
            id=1,
            date=date(2025, 1, 1),
            account_id=1,
            type=TransactionType.EXPENSE,
            amount_twd=Decimal("150"),
            created_at=datetime(2025, 1, 1, 12, 0),
        )
        dumped = root.model_dump(mode="json")
        assert dumped["amount_twd"] == 150
        assert dumped["children"] == []
        assert root.model_dump()["amount_twd"] == Decimal("150")


class TestBalanceEffect:
    """Tests for the forward effect of a root on its account."""

    def test_income_adds(self):
        assert balance_effect(TransactionType.INCOME, Decimal("50")) == Decimal("50")

    def test_expense_and_transfer_subtract(self):
        assert balance_effect(TransactionType.EXPENSE, Decimal("50")) == Decimal("-50")
        assert balance_effect(TransactionType.TRANSFER, Decimal("50")) == Decimal("-50")


class TestLedgerView:

    def test_reconciled_is_serialized(self):
        """Test that the computed reconciled flag reaches JSON."""
        view = LedgerView(
            account=Account(id=1, name="Bank", balance=Decimal("1000")),
            rows=[
                LedgerRow(
                    date=date(2024, 1, 1),
                    type=LedgerRowType.BALANCE,
                    running_balance=Decimal("200"),
                ),
            ],
            initial_balance=Decimal("200"),
            derived_balance=Decimal("1000"),
            discrepancy=Decimal("0"),
        )
        assert view.reconciled is True
        assert view.sentinel.is_sentinel is True
        assert view.model_dump(mode="json")["reconciled"] is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Transaction created",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.NOTE_SAVED,
            description="Note saved",
            details={"tag": "general"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "note_saved"
        assert log_dict["details"]["tag"] == "general"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_transaction_created(self):
        """Test AuditEventBuilder.transaction_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.transaction_created(
            transaction_id=7,
            account_id=1,
            amount="150",
            split_count=2,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == 7
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_delete_with_orphans_warns(self):
        """Deleting a root that leaves lines behind is a warning."""
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=7,
            was_root=True,
            orphaned_lines=2,
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.TRANSACTION_DELETED
        assert event.severity == AuditSeverity.WARNING

    def test_audit_event_builder_balance_mismatch(self):
        event = AuditEventBuilder.balance_mismatch(
            account_id=3,
            stored="1000",
            derived="900",
        )
        assert event.event_type == AuditEventType.BALANCE_MISMATCH_DETECTED
        assert event.entity_type == "account"
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount_twd",
                    issue_type="missing",
                    message="amount_twd is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="children",
                    issue_type="split_mismatch",
                    message="Split lines add up to 90",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Split lines add up to 90"]

    def test_issue_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="x", message="x", severity="fatal")


class TestTypeEnums:
    """Tests for the closed type sets."""

    def test_stored_types(self):
        assert [t.value for t in TransactionType] == ["EXPENSE", "INCOME", "TRANSFER"]

    def test_transfer_in_is_not_a_stored_type(self):
        with pytest.raises(ValueError):
            TransactionType("TRANSFER_IN")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
