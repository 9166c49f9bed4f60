"""Payment ledger: apply and void payments against invoices."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from time import perf_counter
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..config import get_settings
from ..exceptions import (
    CurrencyMismatch,
    InvalidAmount,
    InvalidPaymentMethod,
    InvalidTransition,
    InvoiceClosed,
    LedgerError,
    OverpaymentRejected,
)
from ..money import Money
from .invoices import InvoiceService
from .ledger_store import LedgerStore

LOGGER = logging.getLogger(__name__)

CLOSED_FOR_PAYMENTS = frozenset({models.InvoiceStatus.PAID, models.InvoiceStatus.CANCELLED})


@dataclass(frozen=True)
class BalanceSnapshot:
    """Invoice balance figures captured before and after a ledger write."""

    total_minor: int
    paid_minor: int
    status: str

    @property
    def remaining_minor(self) -> int:
        return self.total_minor - self.paid_minor

    def as_dict(self) -> dict:
        return {
            "total_minor": self.total_minor,
            "paid_minor": self.paid_minor,
            "remaining_minor": self.remaining_minor,
            "status": self.status,
        }


class PaymentService:
    """Operations for recording, voiding and reading payments."""

    @staticmethod
    def _coerce_amount(amount: Money | Decimal | str | int, currency: str) -> Money:
        if isinstance(amount, Money):
            if amount.currency != currency.upper():
                raise CurrencyMismatch(
                    f"Payment is in {amount.currency}, invoice is in {currency}"
                )
            return amount
        return Money.from_major_units(amount, currency, strict=True)

    @staticmethod
    def _coerce_method(method: models.PaymentMethod | str) -> models.PaymentMethod:
        try:
            return models.PaymentMethod(method)
        except ValueError as exc:
            raise InvalidPaymentMethod(f"Unsupported payment method: {method}") from exc

    @staticmethod
    def _balance_snapshot(invoice: models.Invoice) -> BalanceSnapshot:
        status = invoice.status
        return BalanceSnapshot(
            total_minor=int(invoice.total_minor or 0),
            paid_minor=int(invoice.paid_minor or 0),
            status=status.value if isinstance(status, models.InvoiceStatus) else str(status),
        )

    @staticmethod
    def remaining_balance(invoice: models.Invoice) -> Money:
        return invoice.remaining

    @classmethod
    def apply_payment(
        cls,
        db: Session,
        invoice_id: str,
        *,
        amount: Money | Decimal | str | int,
        method: models.PaymentMethod | str,
        payment_date: Optional[date] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        recorded_by: Optional[str] = None,
    ) -> models.Payment:
        """Record a payment and its effect on the invoice as one unit.

        The invoice is re-read for update, so the closed, positive-amount and
        remaining-balance checks run against the latest committed state. The
        payment row, the audit entry and the invoice's new paid amount and
        status are committed together or not at all.
        """

        start = perf_counter()
        store = LedgerStore(db)
        try:
            payment_method = cls._coerce_method(method)
            invoice = store.get_invoice(invoice_id, for_update=True)
            if invoice.status in CLOSED_FOR_PAYMENTS:
                raise InvoiceClosed(
                    f"Invoice {invoice.number} is {invoice.status.value} and accepts no payments"
                )

            money = cls._coerce_amount(amount, invoice.currency)
            if not money.is_positive():
                raise InvalidAmount("Payment amount must be greater than zero")

            remaining = invoice.remaining
            if money > remaining:
                raise OverpaymentRejected(remaining)

            previous = cls._balance_snapshot(invoice)
            payment = models.Payment(
                invoice=invoice,
                client_id=invoice.client_id,
                amount_minor=money.minor_units,
                currency=money.currency,
                method=payment_method,
                payment_date=payment_date or date.today(),
                reference=reference,
                notes=notes,
                recorded_by=recorded_by,
                voided=False,
            )
            invoice.paid_minor = previous.paid_minor + money.minor_units
            invoice.status = InvoiceService.derive_status(invoice)
            resulting = cls._balance_snapshot(invoice)

            audit_entry = models.PaymentAuditLog(
                payment=payment,
                invoice_id=invoice.id,
                action=models.PaymentAuditAction.CREATED,
                performed_by=recorded_by,
                snapshot={
                    "amount_minor": money.minor_units,
                    "currency": money.currency,
                    "method": payment.method.value,
                    "payment_date": str(payment.payment_date),
                    "reference": reference,
                    "invoice_number": invoice.number,
                    "previous_balance": previous.as_dict(),
                    "resulting_balance": resulting.as_dict(),
                },
            )
        except LedgerError as exc:
            store.rollback()
            LOGGER.warning(
                "Payment rejected",
                extra={
                    "invoice_id": str(invoice_id),
                    "reason": exc.code,
                    "duration_ms": (perf_counter() - start) * 1000,
                },
            )
            raise

        payment = store.record_payment(invoice, payment, audit_entry)
        LOGGER.info(
            "Payment applied",
            extra={
                "invoice_id": invoice.id,
                "payment_id": payment.id,
                "amount_minor": payment.amount_minor,
                "status": invoice.status.value,
                "duration_ms": (perf_counter() - start) * 1000,
            },
        )
        return payment

    @classmethod
    def void_payment(
        cls,
        db: Session,
        payment_id: str,
        *,
        reason: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> models.Invoice:
        """Void a payment, restoring the invoice's outstanding balance.

        Voiding is the only correction a payment supports; its amount is never
        edited. Payments on cancelled invoices cannot be voided.
        """

        store = LedgerStore(db)
        try:
            payment = store.get_payment(payment_id, for_update=True)
            invoice = store.get_invoice(payment.invoice_id, for_update=True)
            if payment.voided:
                raise InvalidTransition(f"Payment {payment.id} is already voided")
            if invoice.status == models.InvoiceStatus.CANCELLED:
                raise InvoiceClosed(
                    f"Invoice {invoice.number} is cancelled; its payments are frozen"
                )

            previous = cls._balance_snapshot(invoice)
            # paid_minor never drops below zero: it always equals the non-voided sum.
            invoice.paid_minor = max(previous.paid_minor - int(payment.amount_minor), 0)
            invoice.status = InvoiceService.derive_status(invoice)
            payment.voided = True
            payment.voided_at = datetime.now(timezone.utc)
            payment.void_reason = reason

            audit_entry = models.PaymentAuditLog(
                payment=payment,
                invoice_id=invoice.id,
                action=models.PaymentAuditAction.VOIDED,
                performed_by=performed_by,
                notes=reason,
                snapshot={
                    "amount_minor": int(payment.amount_minor),
                    "currency": payment.currency,
                    "invoice_number": invoice.number,
                    "previous_balance": previous.as_dict(),
                    "resulting_balance": cls._balance_snapshot(invoice).as_dict(),
                },
            )
        except LedgerError:
            store.rollback()
            raise

        invoice = store.record_void(invoice, payment, audit_entry)
        LOGGER.info(
            "Payment voided",
            extra={"invoice_id": invoice.id, "payment_id": str(payment_id)},
        )
        return invoice

    @staticmethod
    def get_payment(db: Session, payment_id: str) -> models.Payment:
        return LedgerStore(db).get_payment(payment_id)

    @staticmethod
    def list_payments(
        db: Session,
        *,
        invoice_id: Optional[str] = None,
        client_id: Optional[str] = None,
        include_voided: bool = True,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.Payment], int]:
        query = db.query(models.Payment).options(selectinload(models.Payment.invoice))

        if invoice_id:
            try:
                invoice_key = str(uuid.UUID(str(invoice_id)))
            except ValueError:
                return [], 0
            query = query.filter(models.Payment.invoice_id == invoice_key)
        if client_id:
            query = query.filter(models.Payment.client_id == client_id)
        if not include_voided:
            query = query.filter(models.Payment.voided.is_(False))
        if start_date:
            query = query.filter(models.Payment.payment_date >= start_date)
        if end_date:
            query = query.filter(models.Payment.payment_date <= end_date)

        total = query.count()
        items = (
            query.order_by(
                models.Payment.payment_date.desc(),
                models.Payment.created_at.desc(),
            )
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def amount_spent(db: Session, client_id: str, currency: Optional[str] = None) -> Money:
        """Sum of a client's non-voided payments, always read from the log."""

        code = (currency or get_settings().currency).upper()
        total = (
            db.query(func.coalesce(func.sum(models.Payment.amount_minor), 0))
            .filter(
                models.Payment.client_id == client_id,
                models.Payment.currency == code,
                models.Payment.voided.is_(False),
            )
            .scalar()
        )
        return Money(int(total or 0), code)


__all__ = ["BalanceSnapshot", "PaymentService"]
