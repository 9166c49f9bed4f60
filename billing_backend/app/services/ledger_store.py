"""Transactional persistence boundary for invoices, payments and numbering."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from .. import models
from ..exceptions import Conflict, LedgerError, LedgerStoreError, NotFound
from .numbering import InvoiceNumberAllocator, default_policy

LOGGER = logging.getLogger(__name__)

InvoiceFactory = Callable[[str, models.NumberingPolicy], models.Invoice]


def _parse_id(value: object, label: str) -> str:
    """Canonical string form of a row id; malformed ids cannot match any row."""

    if isinstance(value, uuid.UUID):
        return str(value)
    try:
        return str(uuid.UUID(str(value)))
    except ValueError as exc:
        raise NotFound(f"{label} {value} not found") from exc


class LedgerStore:
    """Atomic read-modify-write operations over a SQLAlchemy session.

    Reads taken ``for_update`` lock the row where the database supports it and
    always refresh the identity map, so checks run against committed state.
    Invoices and the numbering policy also carry a version column: a write
    based on a stale read fails with :class:`Conflict` instead of overwriting
    a concurrent update. Every write method commits its whole unit or rolls
    all of it back.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_invoice(self, invoice_id: str, *, for_update: bool = False) -> models.Invoice:
        key = _parse_id(invoice_id, "Invoice")
        query = (
            self.db.query(models.Invoice)
            .options(selectinload(models.Invoice.lines))
            .filter(models.Invoice.id == key)
        )
        if for_update:
            query = query.with_for_update(of=models.Invoice).populate_existing()
        invoice = query.first()
        if invoice is None:
            raise NotFound(f"Invoice {invoice_id} not found")
        return invoice

    def get_payment(self, payment_id: str, *, for_update: bool = False) -> models.Payment:
        key = _parse_id(payment_id, "Payment")
        query = self.db.query(models.Payment).filter(models.Payment.id == key)
        if for_update:
            query = query.with_for_update(of=models.Payment).populate_existing()
        payment = query.first()
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")
        return payment

    def get_policy(self, *, for_update: bool = False) -> models.NumberingPolicy:
        query = self.db.query(models.NumberingPolicy).filter(
            models.NumberingPolicy.id == models.NUMBERING_POLICY_ID
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        policy = query.first()
        if policy is None:
            policy = default_policy()
            self.db.add(policy)
            self.db.flush()
        return policy

    def ensure_policy(self) -> models.NumberingPolicy:
        """Return the policy row, creating and committing the default if missing."""

        policy = self.get_policy()
        if self.db.new or self.db.dirty:
            self._commit(policy)
        return policy

    def create_invoice_with_number(
        self, issue_date: date, build: InvoiceFactory
    ) -> models.Invoice:
        """Advance the counter and insert the invoice it numbers, as one unit.

        ``build`` receives the allocated number and the locked policy and must
        return an unsaved invoice. If anything fails the counter increment is
        rolled back together with the insert, so failures leave no gaps.
        """

        try:
            policy = self.get_policy(for_update=True)
            allocated = InvoiceNumberAllocator.allocate(policy, issue_date)
            invoice = build(allocated.number, allocated.policy)
            self.db.add(allocated.policy)
            self.db.add(invoice)
            self.db.flush()
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            LOGGER.warning("Invoice number collision; caller should retry", exc_info=exc)
            raise Conflict("Invoice number already taken; retry the request", cause=exc) from exc
        except (StaleDataError, OperationalError) as exc:
            self.db.rollback()
            LOGGER.warning("Numbering policy changed concurrently", exc_info=exc)
            raise Conflict("Numbering policy was modified concurrently; retry", cause=exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            LOGGER.exception("Failed to persist invoice")
            raise LedgerStoreError("Unable to create the invoice at this time.", cause=exc) from exc

        self.db.refresh(invoice)
        return invoice

    def record_payment(
        self,
        invoice: models.Invoice,
        payment: models.Payment,
        audit_entry: models.PaymentAuditLog,
    ) -> models.Payment:
        """Insert ``payment`` and persist its effect on ``invoice`` together."""

        self._commit(invoice, payment, audit_entry)
        self.db.refresh(payment)
        return payment

    def record_void(
        self,
        invoice: models.Invoice,
        payment: models.Payment,
        audit_entry: models.PaymentAuditLog,
    ) -> models.Invoice:
        """Persist a voided payment and the invoice balance it restores."""

        self._commit(invoice, payment, audit_entry)
        self.db.refresh(invoice)
        return invoice

    def save_invoice(self, invoice: models.Invoice) -> models.Invoice:
        self._commit(invoice)
        self.db.refresh(invoice)
        return invoice

    def save_policy(self, policy: models.NumberingPolicy) -> models.NumberingPolicy:
        self._commit(policy)
        self.db.refresh(policy)
        return policy

    def delete_invoice(self, invoice: models.Invoice, voided_payments: Optional[list] = None) -> None:
        """Remove an invoice, along with any voided payments still pointing at it."""

        try:
            for payment in voided_payments or []:
                self.db.delete(payment)
            self.db.flush()
            self.db.delete(invoice)
            self.db.flush()
            self.db.commit()
        except (StaleDataError, OperationalError) as exc:
            self.db.rollback()
            raise Conflict("Invoice was modified concurrently; retry", cause=exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            LOGGER.exception("Failed to delete invoice", extra={"invoice_id": invoice.id})
            raise LedgerStoreError("Unable to delete the invoice at this time.", cause=exc) from exc

    def rollback(self) -> None:
        self.db.rollback()

    def _commit(self, *instances) -> None:
        try:
            for instance in instances:
                self.db.add(instance)
            self.db.flush()
            self.db.commit()
        except (StaleDataError, OperationalError) as exc:
            self.db.rollback()
            LOGGER.warning("Concurrent ledger update detected", exc_info=exc)
            raise Conflict(
                "The invoice was modified by another request; reload and retry", cause=exc
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            LOGGER.exception("Failed to persist ledger changes")
            raise LedgerStoreError("Unable to save ledger changes at this time.", cause=exc) from exc


__all__ = ["InvoiceFactory", "LedgerStore"]
