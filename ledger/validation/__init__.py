"""Validation package."""

from ledger.validation.validator import (
    TransactionValidator,
    ValidationError,
    require_valid,
)

__all__ = ["TransactionValidator", "ValidationError", "require_valid"]
