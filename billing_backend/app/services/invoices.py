"""Invoice lifecycle: creation, status derivation and explicit transitions."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from sqlalchemy import and_, not_
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..config import get_settings
from ..exceptions import (
    EmptyLineItems,
    HasPayments,
    InvalidAmount,
    InvalidDateRange,
    InvalidTransition,
    InvoiceClosed,
    LedgerError,
)
from .ledger_store import LedgerStore
from .totals import InvoiceTotals, LineItem, TotalsCalculator

LOGGER = logging.getLogger(__name__)

Status = models.InvoiceStatus

TERMINAL_STATUSES = frozenset({Status.PAID, Status.CANCELLED})
CANCELLABLE_STATUSES = frozenset({Status.DRAFT, Status.SENT, Status.PARTIALLY_PAID})


class InvoiceService:
    """Operations that create invoices and move them through their lifecycle."""

    @staticmethod
    def derive_status(invoice: models.Invoice) -> models.InvoiceStatus:
        """Status implied by the invoice's paid amount and total.

        Cancelled invoices keep their status. Otherwise a fully paid invoice
        with a positive total is paid, any other positive paid amount is a
        partial payment, and an unpaid invoice is sent or, if it never left
        draft, still draft. Overdue is never returned; see ``display_status``.
        """

        if invoice.status == Status.CANCELLED:
            return Status.CANCELLED
        paid = int(invoice.paid_minor or 0)
        total = int(invoice.total_minor or 0)
        if total > 0 and paid >= total:
            return Status.PAID
        if paid > 0:
            return Status.PARTIALLY_PAID
        return Status.SENT if invoice.sent_at is not None else Status.DRAFT

    @staticmethod
    def is_overdue(invoice: models.Invoice, today: Optional[date] = None) -> bool:
        reference = today or date.today()
        return (
            invoice.status not in TERMINAL_STATUSES
            and invoice.due_date < reference
            and int(invoice.paid_minor or 0) < int(invoice.total_minor or 0)
        )

    @classmethod
    def display_status(
        cls, invoice: models.Invoice, today: Optional[date] = None
    ) -> models.InvoiceStatus:
        """Stored status, or ``overdue`` when the invoice is past due and unpaid."""

        if cls.is_overdue(invoice, today):
            return Status.OVERDUE
        return invoice.status

    @staticmethod
    def _build_lines(line_items: Sequence[LineItem]) -> list[models.InvoiceLine]:
        lines = []
        for position, item in enumerate(line_items):
            if item.unit_price.minor_units < 0:
                raise InvalidAmount(f"Line item {item.id} has a negative price")
            lines.append(
                models.InvoiceLine(
                    position=position,
                    line_item_id=str(item.id),
                    description=item.description,
                    unit_price_minor=item.unit_price.minor_units,
                )
            )
        return lines

    @staticmethod
    def _apply_totals(invoice: models.Invoice, totals: InvoiceTotals) -> None:
        invoice.tax_rate = totals.tax_rate
        invoice.discount_rate = totals.discount_rate
        invoice.subtotal_minor = totals.subtotal.minor_units
        invoice.tax_minor = totals.tax_amount.minor_units
        invoice.discount_minor = totals.discount_amount.minor_units
        invoice.total_minor = totals.total.minor_units

    @classmethod
    def create(
        cls,
        db: Session,
        *,
        client_id: str,
        line_items: Sequence[LineItem],
        tax_rate: Decimal | str | int | None = None,
        discount_rate: Decimal | str | int | None = None,
        issue_date: Optional[date] = None,
        due_in_days: Optional[int] = None,
        notes: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> models.Invoice:
        """Create a draft invoice numbered from the shared policy.

        ``tax_rate`` falls back to the configured default and ``due_in_days``
        to the policy's value. Totals are validated before a number is
        allocated; the allocation and the insert then commit together.
        """

        settings = get_settings()
        invoice_currency = (currency or settings.currency).upper()
        items = list(line_items)
        if not items:
            raise EmptyLineItems("An invoice needs at least one line item")
        if due_in_days is not None and due_in_days < 0:
            raise InvalidDateRange("due_in_days cannot be negative")

        totals = TotalsCalculator.compute(
            items,
            settings.default_tax_rate if tax_rate is None else tax_rate,
            discount_rate,
            currency=invoice_currency,
        )
        lines = cls._build_lines(items)
        issued_on = issue_date or date.today()

        def build(number: str, policy: models.NumberingPolicy) -> models.Invoice:
            days = policy.due_in_days if due_in_days is None else due_in_days
            due_date = issued_on + timedelta(days=int(days))
            if due_date < issued_on:
                raise InvalidDateRange("Due date cannot precede the issue date")
            invoice = models.Invoice(
                number=number,
                client_id=str(client_id),
                issue_date=issued_on,
                due_date=due_date,
                currency=invoice_currency,
                paid_minor=0,
                status=Status.DRAFT,
                notes=notes,
                lines=lines,
            )
            cls._apply_totals(invoice, totals)
            return invoice

        invoice = LedgerStore(db).create_invoice_with_number(issued_on, build)
        LOGGER.info(
            "Invoice created",
            extra={
                "invoice_id": invoice.id,
                "invoice_number": invoice.number,
                "client_id": invoice.client_id,
                "total_minor": invoice.total_minor,
            },
        )
        return invoice

    @staticmethod
    def get(db: Session, invoice_id: str) -> models.Invoice:
        return LedgerStore(db).get_invoice(invoice_id)

    @staticmethod
    def _overdue_clause(reference: date):
        return and_(
            models.Invoice.due_date < reference,
            models.Invoice.paid_minor < models.Invoice.total_minor,
            not_(models.Invoice.status.in_(sorted(TERMINAL_STATUSES))),
        )

    @classmethod
    def list_invoices(
        cls,
        db: Session,
        *,
        client_id: Optional[str] = None,
        status: Optional[models.InvoiceStatus] = None,
        today: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.Invoice], int]:
        query = db.query(models.Invoice).options(
            selectinload(models.Invoice.lines),
            selectinload(models.Invoice.payments),
        )

        if client_id:
            query = query.filter(models.Invoice.client_id == client_id)
        if status == Status.OVERDUE:
            query = query.filter(cls._overdue_clause(today or date.today()))
        elif status is not None:
            query = query.filter(models.Invoice.status == status)

        total = query.count()
        items = (
            query.order_by(models.Invoice.created_at.desc(), models.Invoice.number.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @classmethod
    def list_overdue(cls, db: Session, today: Optional[date] = None) -> list[models.Invoice]:
        reference = today or date.today()
        return (
            db.query(models.Invoice)
            .filter(cls._overdue_clause(reference))
            .order_by(models.Invoice.due_date.asc(), models.Invoice.number.asc())
            .all()
        )

    @classmethod
    def send(cls, db: Session, invoice_id: str) -> models.Invoice:
        """Mark an invoice as sent to the client."""

        store = LedgerStore(db)
        try:
            invoice = store.get_invoice(invoice_id, for_update=True)
            if invoice.status in TERMINAL_STATUSES:
                raise InvoiceClosed(f"Invoice {invoice.number} is {invoice.status.value}")
            if invoice.sent_at is not None:
                raise InvalidTransition(f"Invoice {invoice.number} was already sent")
            invoice.sent_at = datetime.now(timezone.utc)
            invoice.status = cls.derive_status(invoice)
        except LedgerError:
            store.rollback()
            raise

        invoice = store.save_invoice(invoice)
        LOGGER.info("Invoice sent", extra={"invoice_id": invoice.id})
        return invoice

    @classmethod
    def cancel(cls, db: Session, invoice_id: str) -> models.Invoice:
        """Cancel an invoice that is not yet paid. Payments already applied stay."""

        store = LedgerStore(db)
        try:
            invoice = store.get_invoice(invoice_id, for_update=True)
            if invoice.status not in CANCELLABLE_STATUSES:
                raise InvoiceClosed(
                    f"Invoice {invoice.number} is {invoice.status.value} and cannot be cancelled"
                )
            invoice.status = Status.CANCELLED
            invoice.cancelled_at = datetime.now(timezone.utc)
        except LedgerError:
            store.rollback()
            raise

        invoice = store.save_invoice(invoice)
        LOGGER.info("Invoice cancelled", extra={"invoice_id": invoice.id})
        return invoice

    @classmethod
    def update_draft(
        cls,
        db: Session,
        invoice_id: str,
        *,
        line_items: Optional[Sequence[LineItem]] = None,
        tax_rate: Decimal | str | int | None = None,
        discount_rate: Decimal | str | int | None = None,
        notes: Optional[str] = None,
    ) -> models.Invoice:
        """Change a draft's lines, rates or notes and recompute its totals.

        Once an invoice has been sent or has received a payment its lines and
        totals are frozen.
        """

        store = LedgerStore(db)
        try:
            invoice = store.get_invoice(invoice_id, for_update=True)
            if invoice.status in TERMINAL_STATUSES:
                raise InvoiceClosed(f"Invoice {invoice.number} is {invoice.status.value}")
            if invoice.status != Status.DRAFT or int(invoice.paid_minor or 0) > 0:
                raise InvalidTransition(
                    f"Invoice {invoice.number} is no longer a draft; its totals are frozen"
                )

            if line_items is not None:
                items = list(line_items)
                if not items:
                    raise EmptyLineItems("An invoice needs at least one line item")
            else:
                items = line_items_from_lines(invoice.lines)

            totals = TotalsCalculator.compute(
                items,
                invoice.tax_rate if tax_rate is None else tax_rate,
                invoice.discount_rate if discount_rate is None else discount_rate,
                currency=invoice.currency,
            )
            if line_items is not None:
                invoice.lines = cls._build_lines(items)
            cls._apply_totals(invoice, totals)
            if notes is not None:
                invoice.notes = notes
        except LedgerError:
            store.rollback()
            raise

        invoice = store.save_invoice(invoice)
        LOGGER.info(
            "Draft invoice updated",
            extra={"invoice_id": invoice.id, "total_minor": invoice.total_minor},
        )
        return invoice

    @staticmethod
    def delete(db: Session, invoice_id: str) -> None:
        """Delete an invoice unless it carries payment history."""

        store = LedgerStore(db)
        try:
            invoice = store.get_invoice(invoice_id, for_update=True)
            payments = list(invoice.payments)
            if any(not payment.voided for payment in payments):
                raise HasPayments(
                    f"Invoice {invoice.number} has payments and cannot be deleted"
                )
        except LedgerError:
            store.rollback()
            raise

        store.delete_invoice(invoice, voided_payments=payments)
        LOGGER.info("Invoice deleted", extra={"invoice_id": invoice_id})


def line_items_from_lines(lines: Iterable[models.InvoiceLine]) -> list[LineItem]:
    return [
        LineItem(id=line.line_item_id, unit_price=line.unit_price, description=line.description)
        for line in lines
    ]


__all__ = [
    "CANCELLABLE_STATUSES",
    "InvoiceService",
    "TERMINAL_STATUSES",
    "line_items_from_lines",
]
