"""Append-only audit trail for ledger writes."""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, JSON, String, Text, func
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID


class PaymentAuditAction(str, enum.Enum):
    """Actions recorded in the payment audit log."""

    CREATED = "created"
    VOIDED = "voided"


class PaymentAuditLog(Base):
    """Stores one entry per payment write, committed with the write itself."""

    __tablename__ = "payment_audit_log"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    payment_id = Column(
        GUID(),
        ForeignKey("payments.payment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_id = Column(GUID(), nullable=False, index=True)
    action = Column(
        Enum(
            PaymentAuditAction,
            name="payment_audit_action_enum",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            native_enum=False,
            length=20,
        ),
        nullable=False,
    )
    performed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    performed_by = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    snapshot = Column(JSON().with_variant(SQLiteJSON(), "sqlite"), nullable=True)

    payment = relationship("Payment", back_populates="audit_trail")
