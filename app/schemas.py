"""Request and response bodies of the JSON API."""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger.models import (
    Cents,
    CategoryTotal,
    Rate,
    SplitLineDraft,
    StatsResult,
    TransactionDraft,
)

from app.presentation import EntryType, to_stored_type


class TransactionMainIn(BaseModel):
    """Root fields of a write. Missing required fields are reported as 400 later."""
    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[dt.date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    type: EntryType = EntryType.EXPENSE
    amount_twd: Optional[Cents] = None
    amount_foreign: Optional[Cents] = None
    exchange_rate: Optional[Rate] = None
    note: Optional[str] = Field(default=None, max_length=500)


class TransactionBody(BaseModel):
    """`{main, children}` body of POST and PUT /api/transactions."""

    main: TransactionMainIn
    children: Optional[list[SplitLineDraft]] = None

    def to_draft(self) -> TransactionDraft:
        fields = self.main.model_dump(exclude={"type"})
        return TransactionDraft(
            **fields,
            type=to_stored_type(self.main.type),
            children=self.children or [],
        )


class CategoryBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: EntryType = EntryType.EXPENSE


class WriteResponse(BaseModel):
    success: bool = True
    id: Optional[int] = None


class StatsResponse(StatsResult):
    """Stats plus the dashboard's trimmed category list."""

    top_categories: list[CategoryTotal] = Field(default_factory=list)
