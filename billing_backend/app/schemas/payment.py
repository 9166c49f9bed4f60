from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..models.payment import Payment, PaymentMethod
from .common import MoneyRead, PaginatedResponse


class PaymentCreate(BaseModel):
    """Schema used when applying a payment to an invoice."""

    invoice_id: str = Field(..., description="Invoice receiving the payment")
    amount: Decimal = Field(..., description="Amount received, in major units")
    method: PaymentMethod = Field(..., description="Payment method used by the client")
    payment_date: Optional[date] = Field(
        default=None, description="Date the payment was received"
    )
    reference: Optional[str] = Field(default=None, max_length=120)
    notes: Optional[str] = None
    recorded_by: Optional[str] = Field(
        default=None, max_length=120, description="User who captured the payment"
    )


class PaymentVoid(BaseModel):
    """Schema used when voiding a payment."""

    reason: Optional[str] = None
    performed_by: Optional[str] = Field(default=None, max_length=120)


class PaymentRead(BaseModel):
    """Schema returned when reading payment data."""

    id: str
    invoice_id: str
    invoice_number: Optional[str] = None
    client_id: str
    amount: MoneyRead
    method: PaymentMethod
    payment_date: date
    reference: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[str] = None
    voided: bool = False
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentRead":
        return cls(
            id=str(payment.id),
            invoice_id=str(payment.invoice_id),
            invoice_number=payment.invoice.number if payment.invoice is not None else None,
            client_id=payment.client_id,
            amount=MoneyRead.from_money(payment.amount),
            method=payment.method,
            payment_date=payment.payment_date,
            reference=payment.reference,
            notes=payment.notes,
            recorded_by=payment.recorded_by,
            voided=bool(payment.voided),
            voided_at=payment.voided_at,
            void_reason=payment.void_reason,
            created_at=payment.created_at,
        )


class PaymentListResponse(PaginatedResponse[PaymentRead]):
    """Paginated payment listing."""

    pass


class AmountSpentRead(BaseModel):
    """Lifetime non-voided payments for a client."""

    client_id: str
    amount_spent: MoneyRead
