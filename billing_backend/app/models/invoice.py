"""SQLAlchemy models for invoices and their frozen line items."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, MinorUnits
from ..money import Money


class InvoiceStatus(str, enum.Enum):
    """Stored and derived invoice states."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


INVOICE_STATUS_ENUM = Enum(
    InvoiceStatus,
    name="invoice_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
    length=20,
)


class Invoice(Base):
    """One bill issued to one client."""

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("due_date >= issue_date", name="ck_invoices_due_after_issue"),
        CheckConstraint("subtotal_minor >= 0", name="ck_invoices_subtotal_non_negative"),
        CheckConstraint("total_minor >= 0", name="ck_invoices_total_non_negative"),
        CheckConstraint("paid_minor >= 0", name="ck_invoices_paid_non_negative"),
        CheckConstraint("paid_minor <= total_minor", name="ck_invoices_paid_within_total"),
        CheckConstraint(
            "tax_rate >= 0 AND tax_rate <= 100", name="ck_invoices_tax_rate_range"
        ),
        CheckConstraint(
            "discount_rate >= 0 AND discount_rate <= 100",
            name="ck_invoices_discount_rate_range",
        ),
    )

    id = Column("invoice_id", GUID(), primary_key=True, default=uuid.uuid4)
    number = Column("invoice_number", String(64), nullable=False, unique=True)
    client_id = Column(String(64), nullable=False, index=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    currency = Column(String(3), nullable=False)
    tax_rate = Column(Numeric(6, 3), nullable=False, default=0)
    discount_rate = Column(Numeric(6, 3), nullable=False, default=0)
    subtotal_minor = Column(MinorUnits(), nullable=False, default=0)
    tax_minor = Column(MinorUnits(), nullable=False, default=0)
    discount_minor = Column(MinorUnits(), nullable=False, default=0)
    total_minor = Column(MinorUnits(), nullable=False, default=0)
    paid_minor = Column(MinorUnits(), nullable=False, default=0)
    status = Column(INVOICE_STATUS_ENUM, nullable=False, default=InvoiceStatus.DRAFT)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.position",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        passive_deletes="all",
        order_by="Payment.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    def _money(self, minor: int | None) -> Money:
        return Money(int(minor or 0), self.currency)

    @property
    def subtotal(self) -> Money:
        return self._money(self.subtotal_minor)

    @property
    def tax_amount(self) -> Money:
        return self._money(self.tax_minor)

    @property
    def discount_amount(self) -> Money:
        return self._money(self.discount_minor)

    @property
    def total(self) -> Money:
        return self._money(self.total_minor)

    @property
    def paid_amount(self) -> Money:
        return self._money(self.paid_minor)

    @property
    def remaining(self) -> Money:
        return self.total.subtract(self.paid_amount)

    @property
    def line_item_ids(self) -> list[str]:
        return [line.line_item_id for line in self.lines]


class InvoiceLine(Base):
    """Snapshot of a priced line item as it was billed."""

    __tablename__ = "invoice_lines"
    __table_args__ = (
        CheckConstraint("unit_price_minor >= 0", name="ck_invoice_lines_price_non_negative"),
        CheckConstraint("position >= 0", name="ck_invoice_lines_position_non_negative"),
    )

    id = Column("invoice_line_id", GUID(), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        GUID(),
        ForeignKey("invoices.invoice_id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False)
    line_item_id = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    unit_price_minor = Column(MinorUnits(), nullable=False)

    invoice = relationship("Invoice", back_populates="lines")

    @property
    def unit_price(self) -> Money:
        return Money(int(self.unit_price_minor), self.invoice.currency)


Index("invoices_client_idx", Invoice.client_id)
Index("invoices_status_idx", Invoice.status)
Index("invoices_due_date_idx", Invoice.due_date)
Index("invoice_lines_invoice_idx", InvoiceLine.invoice_id, InvoiceLine.position)
