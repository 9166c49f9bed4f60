"""SQLAlchemy model for payments applied against invoices."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, MinorUnits
from ..money import Money


class PaymentMethod(str, enum.Enum):
    """Supported payment methods."""

    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    DIGITAL_WALLET = "digital_wallet"


PAYMENT_METHOD_ENUM = Enum(
    PaymentMethod,
    name="payment_method_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
    length=20,
)


class Payment(Base):
    """A single payment event. Only the void flag changes after insert."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount_minor > 0", name="ck_payments_amount_positive"),
    )

    id = Column("payment_id", GUID(), primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        GUID(),
        ForeignKey("invoices.invoice_id", ondelete="RESTRICT"),
        nullable=False,
    )
    client_id = Column(String(64), nullable=False)
    amount_minor = Column(MinorUnits(), nullable=False)
    currency = Column(String(3), nullable=False)
    method = Column(PAYMENT_METHOD_ENUM, nullable=False)
    payment_date = Column(Date, nullable=False)
    reference = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(120), nullable=True)
    voided = Column(Boolean, nullable=False, default=False)
    voided_at = Column(DateTime(timezone=True), nullable=True)
    void_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    invoice = relationship("Invoice", back_populates="payments")
    audit_trail = relationship(
        "PaymentAuditLog",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAuditLog.performed_at",
    )

    @property
    def amount(self) -> Money:
        return Money(int(self.amount_minor), self.currency)


Index("payments_invoice_idx", Payment.invoice_id)
Index("payments_client_idx", Payment.client_id)
Index("payments_payment_date_idx", Payment.payment_date)
