"""Free-form notes. Independent of the ledger."""

import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NoteDraft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=50)


class Note(BaseModel):
    id: int
    date: dt.date
    title: str
    content: str
    tag: str
    created_at: datetime
