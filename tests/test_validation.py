"""Tests for transaction draft validation."""

import pytest
from datetime import date
from decimal import Decimal

from ledger.models import TransactionDraft
from ledger.validation import TransactionValidator, ValidationError, require_valid


def valid_draft(**overrides) -> TransactionDraft:
    fields = {
        "date": date(2025, 1, 1),
        "account_id": 1,
        "category_id": 5,
        "amount_twd": Decimal("150"),
        "note": "lunch",
    }
    fields.update(overrides)
    return TransactionDraft(**fields)


class TestRequiredFields:
    """Date, account and amount are required on every write."""

    @pytest.mark.parametrize("field", ["date", "account_id", "amount_twd"])
    def test_missing_field_is_error(self, field):
        result = TransactionValidator().validate(valid_draft(**{field: None}))
        assert result.is_valid is False
        assert [i.field for i in result.issues] == [field]

    def test_all_missing_reports_each(self):
        result = TransactionValidator().validate(TransactionDraft())
        assert result.error_count == 3

    def test_category_is_optional(self):
        result = TransactionValidator().validate(valid_draft(category_id=None))
        assert result.is_valid is True
        assert result.issues == []

    def test_split_line_without_amount_is_error(self):
        draft = valid_draft(children=[{"category_id": 2, "amount_twd": None}])
        result = TransactionValidator().validate(draft)
        assert result.is_valid is False
        assert result.issues[0].field == "children[0].amount_twd"


class TestConsistency:
    """Consistency problems are reported as warnings and never block a write."""

    def test_split_mismatch_is_warning(self):
        draft = valid_draft(children=[{"amount_twd": "100"}, {"amount_twd": "20"}])
        result = TransactionValidator().validate(draft)
        assert result.is_valid is True
        assert result.issues[0].issue_type == "split_mismatch"
        assert result.issues[0].severity == "warning"

    def test_matching_splits_have_no_issue(self):
        draft = valid_draft(children=[{"amount_twd": "100"}, {"amount_twd": "50"}])
        assert TransactionValidator().validate(draft).issues == []

    def test_fx_mismatch_is_warning(self):
        draft = valid_draft(
            amount_twd=Decimal("3250"),
            amount_foreign=Decimal("100"),
            exchange_rate=Decimal("20"),
        )
        result = TransactionValidator().validate(draft)
        assert result.is_valid is True
        assert result.warnings

    def test_fx_within_tolerance(self):
        draft = valid_draft(
            amount_twd=Decimal("3250"),
            amount_foreign=Decimal("100"),
            exchange_rate=Decimal("32.5"),
        )
        assert TransactionValidator().validate(draft).issues == []


class TestRequireValid:

    def test_raises_with_message(self):
        with pytest.raises(ValidationError) as exc_info:
            require_valid(valid_draft(date=None, amount_twd=None))
        assert "date is required" in str(exc_info.value)
        assert "amount_twd is required" in str(exc_info.value)
        assert exc_info.value.result.error_count == 2

    def test_returns_result_with_warnings(self):
        result = require_valid(valid_draft(children=[{"amount_twd": "1"}]))
        assert len(result.warnings) == 1
