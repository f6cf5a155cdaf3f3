"""
Transaction Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- date, account and amount must be present on the root
- every split line must carry an amount
- These are errors: the write is refused

STAGE 2 - CONSISTENCY:
- split lines should add up to the root amount
- foreign amount and exchange rate should agree with the root amount
- These are warnings: the store accepts the write, the mismatch is reported

IMPORTANT: Validation NEVER silently fixes issues.
The root amount stays authoritative even when lines disagree with it.
"""

from decimal import Decimal

from ledger.models.transaction import (
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """A draft is missing required fields. Carries the full result."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or "Validation failed")


class TransactionValidator:
    """
    Validates transaction drafts before they reach the store.

    Stage 1 decides whether the write may happen at all.
    Stage 2 only ever produces warnings.
    """

    # Tolerance when checking amount_foreign * exchange_rate against amount_twd
    FX_TOLERANCE = Decimal("0.01")

    def _validate_required(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        issues = []

        if draft.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="date is required",
                severity="error",
            ))

        if draft.account_id is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="account_id is required",
                severity="error",
            ))

        if draft.amount_twd is None:
            issues.append(ValidationIssue(
                field="amount_twd",
                issue_type="missing",
                message="amount_twd is required",
                severity="error",
            ))

        for index, line in enumerate(draft.children):
            if line.amount_twd is None:
                issues.append(ValidationIssue(
                    field=f"children[{index}].amount_twd",
                    issue_type="missing",
                    message=f"split line {index + 1} has no amount",
                    severity="error",
                ))

        return issues

    def _validate_consistency(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        issues = []

        if draft.children and draft.split_total != draft.amount_twd:
            issues.append(ValidationIssue(
                field="children",
                issue_type="split_mismatch",
                message=(
                    f"Split lines add up to {draft.split_total}, "
                    f"root amount is {draft.amount_twd}"
                ),
                severity="warning",
            ))

        if draft.amount_foreign is not None and draft.exchange_rate is not None:
            expected = draft.amount_foreign * draft.exchange_rate
            if abs(expected - draft.amount_twd) > max(
                self.FX_TOLERANCE, abs(draft.amount_twd) * self.FX_TOLERANCE
            ):
                issues.append(ValidationIssue(
                    field="exchange_rate",
                    issue_type="inconsistent",
                    message=(
                        f"{draft.amount_foreign} at rate {draft.exchange_rate} "
                        f"is {expected}, not {draft.amount_twd}"
                    ),
                    severity="warning",
                ))

        return issues

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        """Run both stages. Stage 2 is skipped when stage 1 finds errors."""
        issues = self._validate_required(draft)

        if not issues:
            issues.extend(self._validate_consistency(draft))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )


def require_valid(draft: TransactionDraft) -> ValidationResult:
    """
    Validate a draft and raise ValidationError on error-level issues.

    Returns the result so callers can still report warnings.
    """
    result = TransactionValidator().validate(draft)
    if not result.is_valid:
        raise ValidationError(result)
    return result
