"""Utilities to reconcile invoice balances against the payment log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from .invoices import InvoiceService


@dataclass(frozen=True)
class PaidAmountMismatch:
    """An invoice whose stored paid amount differs from its non-voided payments."""

    invoice_id: str
    invoice_number: str
    stored_paid_minor: int
    payments_paid_minor: int


@dataclass(frozen=True)
class StatusMismatch:
    """An invoice whose stored status differs from the one its balance implies."""

    invoice_id: str
    invoice_number: str
    stored_status: str
    derived_status: str


@dataclass(frozen=True)
class LedgerConsistencySnapshot:
    """Aggregated inconsistencies detected across the ledger."""

    paid_mismatches: list[PaidAmountMismatch] = field(default_factory=list)
    status_mismatches: list[StatusMismatch] = field(default_factory=list)
    overpaid_invoices: list[str] = field(default_factory=list)
    currency_mismatches: list[str] = field(default_factory=list)
    overdue_invoices: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.paid_mismatches
            or self.status_mismatches
            or self.overpaid_invoices
            or self.currency_mismatches
        )


class LedgerConsistencyService:
    """Data reconciliation helpers to surface ledger integrity issues."""

    @staticmethod
    def _payment_totals(db: Session) -> dict[str, int]:
        rows = (
            db.query(models.Payment.invoice_id, func.sum(models.Payment.amount_minor))
            .filter(models.Payment.voided.is_(False))
            .group_by(models.Payment.invoice_id)
            .all()
        )
        return {str(invoice_id): int(total or 0) for invoice_id, total in rows}

    @classmethod
    def check(cls, db: Session, today: Optional[date] = None) -> LedgerConsistencySnapshot:
        """Compare every invoice with the payments recorded against it."""

        totals = cls._payment_totals(db)
        snapshot = LedgerConsistencySnapshot()

        for invoice in db.query(models.Invoice).order_by(models.Invoice.number.asc()):
            stored_paid = int(invoice.paid_minor or 0)
            logged_paid = totals.get(str(invoice.id), 0)
            if stored_paid != logged_paid:
                snapshot.paid_mismatches.append(
                    PaidAmountMismatch(
                        invoice_id=str(invoice.id),
                        invoice_number=invoice.number,
                        stored_paid_minor=stored_paid,
                        payments_paid_minor=logged_paid,
                    )
                )
            if stored_paid > int(invoice.total_minor or 0):
                snapshot.overpaid_invoices.append(invoice.number)

            derived = InvoiceService.derive_status(invoice)
            if derived != invoice.status:
                snapshot.status_mismatches.append(
                    StatusMismatch(
                        invoice_id=str(invoice.id),
                        invoice_number=invoice.number,
                        stored_status=invoice.status.value,
                        derived_status=derived.value,
                    )
                )
            if InvoiceService.is_overdue(invoice, today):
                snapshot.overdue_invoices.append(invoice.number)

        snapshot.currency_mismatches.extend(
            str(payment_id)
            for (payment_id,) in db.query(models.Payment.id)
            .join(models.Invoice, models.Payment.invoice_id == models.Invoice.id)
            .filter(models.Payment.currency != models.Invoice.currency)
            .all()
        )
        return snapshot


__all__ = [
    "LedgerConsistencyService",
    "LedgerConsistencySnapshot",
    "PaidAmountMismatch",
    "StatusMismatch",
]
