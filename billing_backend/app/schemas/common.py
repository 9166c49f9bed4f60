"""Shared schema definitions."""

from __future__ import annotations

from decimal import Decimal
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

from ..money import Money

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard shape for paginated listings."""

    items: Sequence[T]
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    skip: int = Field(..., ge=0)


class MoneyRead(BaseModel):
    """Amount rendered in major units alongside its minor-unit value."""

    amount: Decimal
    minor_units: int
    currency: str

    @classmethod
    def from_money(cls, value: Money) -> "MoneyRead":
        return cls(
            amount=value.to_major_units(),
            minor_units=value.minor_units,
            currency=value.currency,
        )
