from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..models.invoice import Invoice, InvoiceStatus
from ..money import Money
from ..services.invoices import InvoiceService
from ..services.totals import LineItem
from .common import MoneyRead, PaginatedResponse
from .payment import PaymentRead


class LineItemIn(BaseModel):
    """A priced line item as submitted by the client."""

    id: str = Field(..., min_length=1, max_length=64, description="Caller's line item id")
    unit_price: Decimal = Field(..., ge=0, description="Price in major units")
    description: Optional[str] = Field(default=None, max_length=500)

    def to_line_item(self, currency: str) -> LineItem:
        return LineItem(
            id=self.id,
            unit_price=Money.from_major_units(self.unit_price, currency, strict=True),
            description=self.description,
        )


class InvoiceCreate(BaseModel):
    """Schema used when creating an invoice."""

    client_id: str = Field(..., min_length=1, max_length=64)
    line_items: list[LineItemIn] = Field(default_factory=list)
    tax_rate: Optional[Decimal] = Field(default=None, description="Percentage, 0-100")
    discount_rate: Optional[Decimal] = Field(default=None, description="Percentage, 0-100")
    issue_date: Optional[date] = None
    due_in_days: Optional[int] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    """Schema used when editing a draft invoice."""

    line_items: Optional[list[LineItemIn]] = None
    tax_rate: Optional[Decimal] = None
    discount_rate: Optional[Decimal] = None
    notes: Optional[str] = None


class InvoiceLineRead(BaseModel):
    id: str
    position: int
    unit_price: MoneyRead
    description: Optional[str] = None


class InvoiceRead(BaseModel):
    """Schema returned when reading invoice data."""

    id: str
    number: str
    client_id: str
    issue_date: date
    due_date: date
    currency: str
    status: InvoiceStatus
    display_status: InvoiceStatus
    tax_rate: Decimal
    discount_rate: Decimal
    subtotal: MoneyRead
    tax_amount: MoneyRead
    discount_amount: MoneyRead
    total: MoneyRead
    paid_amount: MoneyRead
    remaining: MoneyRead
    line_items: list[InvoiceLineRead]
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_invoice(cls, invoice: Invoice, today: Optional[date] = None) -> "InvoiceRead":
        return cls(
            id=str(invoice.id),
            number=invoice.number,
            client_id=invoice.client_id,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            currency=invoice.currency,
            status=invoice.status,
            display_status=InvoiceService.display_status(invoice, today),
            tax_rate=invoice.tax_rate,
            discount_rate=invoice.discount_rate,
            subtotal=MoneyRead.from_money(invoice.subtotal),
            tax_amount=MoneyRead.from_money(invoice.tax_amount),
            discount_amount=MoneyRead.from_money(invoice.discount_amount),
            total=MoneyRead.from_money(invoice.total),
            paid_amount=MoneyRead.from_money(invoice.paid_amount),
            remaining=MoneyRead.from_money(invoice.remaining),
            line_items=[
                InvoiceLineRead(
                    id=line.line_item_id,
                    position=line.position,
                    unit_price=MoneyRead.from_money(line.unit_price),
                    description=line.description,
                )
                for line in invoice.lines
            ],
            notes=invoice.notes,
            sent_at=invoice.sent_at,
            cancelled_at=invoice.cancelled_at,
            created_at=invoice.created_at,
            updated_at=invoice.updated_at,
        )


class InvoiceDetail(InvoiceRead):
    """Invoice with its payment history."""

    payments: list[PaymentRead] = Field(default_factory=list)

    @classmethod
    def from_invoice(cls, invoice: Invoice, today: Optional[date] = None) -> "InvoiceDetail":
        summary = InvoiceRead.from_invoice(invoice, today)
        return cls(
            **summary.model_dump(),
            payments=[PaymentRead.from_payment(payment) for payment in invoice.payments],
        )


class InvoiceListResponse(PaginatedResponse[InvoiceRead]):
    """Paginated invoice listing."""

    pass
