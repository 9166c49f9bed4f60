"""Expose SQLAlchemy models for convenient imports."""

from .audit import PaymentAuditAction, PaymentAuditLog
from .invoice import Invoice, InvoiceLine, InvoiceStatus
from .numbering import NUMBERING_POLICY_ID, NumberingPolicy
from .payment import Payment, PaymentMethod

__all__ = [
    "Invoice",
    "InvoiceLine",
    "InvoiceStatus",
    "NUMBERING_POLICY_ID",
    "NumberingPolicy",
    "Payment",
    "PaymentAuditAction",
    "PaymentAuditLog",
    "PaymentMethod",
]
