from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NumberingPolicyRead(BaseModel):
    """Current numbering policy plus a preview of the next number."""

    prefix: str
    next_sequence: int
    period_format: str
    due_in_days: int
    next_number: str
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NumberingPolicyUpdate(BaseModel):
    prefix: Optional[str] = Field(default=None, min_length=1, max_length=20)
    period_format: Optional[str] = Field(default=None, min_length=1, max_length=20)
    due_in_days: Optional[int] = None
    next_sequence: Optional[int] = Field(default=None, ge=1)
