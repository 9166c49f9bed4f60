from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from billing_backend.app import models
from billing_backend.app.exceptions import (
    Conflict,
    CurrencyMismatch,
    InvalidAmount,
    InvalidPaymentMethod,
    InvalidTransition,
    InvoiceClosed,
    NotFound,
    OverpaymentRejected,
)
from billing_backend.app.money import Money
from billing_backend.app.services import InvoiceService, PaymentService

Status = models.InvoiceStatus


def _assert_balance_invariant(db_session, invoice_id: str) -> None:
    db_session.expire_all()
    invoice = InvoiceService.get(db_session, invoice_id)
    logged = sum(
        payment.amount_minor
        for payment in db_session.query(models.Payment).filter_by(invoice_id=invoice_id)
        if not payment.voided
    )
    assert invoice.paid_minor == logged
    assert 0 <= invoice.paid_minor <= invoice.total_minor
    assert invoice.status == InvoiceService.derive_status(invoice)


def test_partial_then_full_payment_walks_status(db_session, make_invoice):
    invoice = make_invoice("120.00", "30.50", tax_rate="8.5", send=True)
    assert invoice.total == Money(16329, "USD")

    PaymentService.apply_payment(db_session, invoice.id, amount="100.00", method="cash")
    partial = InvoiceService.get(db_session, invoice.id)
    assert partial.paid_amount == Money(10000, "USD")
    assert partial.status == Status.PARTIALLY_PAID
    assert PaymentService.remaining_balance(partial) == Money(6329, "USD")

    PaymentService.apply_payment(
        db_session, invoice.id, amount=Decimal("63.29"), method="bank_transfer"
    )
    paid = InvoiceService.get(db_session, invoice.id)
    assert paid.paid_amount == Money(16329, "USD")
    assert paid.status == Status.PAID
    assert PaymentService.remaining_balance(paid).is_zero()

    with pytest.raises(InvoiceClosed):
        PaymentService.apply_payment(db_session, invoice.id, amount="0.01", method="cash")
    _assert_balance_invariant(db_session, invoice.id)


def test_overpayment_is_rejected_and_state_unchanged(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)

    with pytest.raises(OverpaymentRejected) as excinfo:
        PaymentService.apply_payment(db_session, invoice.id, amount="100.01", method="cash")

    assert excinfo.value.remaining == Money(10000, "USD")
    assert "100.00 USD" in str(excinfo.value)
    db_session.expire_all()
    unchanged = InvoiceService.get(db_session, invoice.id)
    assert unchanged.paid_minor == 0
    assert unchanged.status == Status.SENT
    assert db_session.query(models.Payment).count() == 0


@pytest.mark.parametrize("amount", ["0", "-5.00", "10.005"])
def test_non_positive_or_sub_cent_amounts_are_rejected(db_session, make_invoice, amount):
    invoice = make_invoice("100.00", send=True)

    with pytest.raises(InvalidAmount):
        PaymentService.apply_payment(db_session, invoice.id, amount=amount, method="cash")

    assert db_session.query(models.Payment).count() == 0


def test_unknown_payment_method_is_a_ledger_error_and_releases_the_invoice(
    db_session, make_invoice
):
    invoice = make_invoice("100.00", send=True)
    InvoiceService.get(db_session, invoice.id)

    with pytest.raises(InvalidPaymentMethod) as excinfo:
        PaymentService.apply_payment(db_session, invoice.id, amount="10.00", method="bitcoin")

    assert excinfo.value.code == "invalid_payment_method"
    assert not db_session.in_transaction()
    assert db_session.query(models.Payment).count() == 0
    assert InvoiceService.get(db_session, invoice.id).paid_minor == 0


def test_payment_in_another_currency_is_rejected(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)

    with pytest.raises(CurrencyMismatch):
        PaymentService.apply_payment(
            db_session, invoice.id, amount=Money(1000, "EUR"), method="cash"
        )


def test_payment_on_cancelled_invoice_is_rejected(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    InvoiceService.cancel(db_session, invoice.id)

    with pytest.raises(InvoiceClosed):
        PaymentService.apply_payment(db_session, invoice.id, amount="1.00", method="cash")


def test_payment_on_unknown_invoice_is_not_found(db_session, numbering_policy):
    with pytest.raises(NotFound):
        PaymentService.apply_payment(
            db_session, "00000000-0000-0000-0000-000000000000", amount="1.00", method="cash"
        )


def test_payment_writes_audit_entry_with_balances(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)

    payment = PaymentService.apply_payment(
        db_session,
        invoice.id,
        amount="25.00",
        method="credit_card",
        payment_date=date(2025, 1, 20),
        reference="TX-1",
        recorded_by="cashier",
    )

    entries = db_session.query(models.PaymentAuditLog).all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.payment_id == payment.id
    assert entry.action == models.PaymentAuditAction.CREATED
    assert entry.performed_by == "cashier"
    assert entry.snapshot["previous_balance"]["paid_minor"] == 0
    assert entry.snapshot["resulting_balance"]["paid_minor"] == 2500
    assert entry.snapshot["resulting_balance"]["status"] == "partially_paid"
    assert payment.client_id == invoice.client_id
    assert payment.payment_date == date(2025, 1, 20)


def test_void_payment_restores_balance_and_status(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    first = PaymentService.apply_payment(db_session, invoice.id, amount="60.00", method="cash")
    PaymentService.apply_payment(db_session, invoice.id, amount="40.00", method="cash")
    assert InvoiceService.get(db_session, invoice.id).status == Status.PAID

    restored = PaymentService.void_payment(
        db_session, first.id, reason="Chargeback", performed_by="ops"
    )

    assert restored.paid_amount == Money(4000, "USD")
    assert restored.status == Status.PARTIALLY_PAID
    voided = PaymentService.get_payment(db_session, first.id)
    assert voided.voided is True
    assert voided.void_reason == "Chargeback"
    actions = [
        entry.action
        for entry in db_session.query(models.PaymentAuditLog)
        .filter_by(payment_id=first.id)
        .all()
    ]
    assert sorted(action.value for action in actions) == ["created", "voided"]
    _assert_balance_invariant(db_session, invoice.id)


def test_voiding_last_payment_returns_to_sent_or_draft(db_session, make_invoice):
    sent = make_invoice("100.00", send=True)
    draft = make_invoice("100.00")
    sent_payment = PaymentService.apply_payment(db_session, sent.id, amount="10.00", method="cash")
    draft_payment = PaymentService.apply_payment(db_session, draft.id, amount="10.00", method="cash")

    assert PaymentService.void_payment(db_session, sent_payment.id).status == Status.SENT
    assert PaymentService.void_payment(db_session, draft_payment.id).status == Status.DRAFT


def test_void_twice_is_invalid(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    payment = PaymentService.apply_payment(db_session, invoice.id, amount="10.00", method="cash")
    PaymentService.void_payment(db_session, payment.id)

    with pytest.raises(InvalidTransition):
        PaymentService.void_payment(db_session, payment.id)
    _assert_balance_invariant(db_session, invoice.id)


def test_void_on_cancelled_invoice_is_rejected(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    payment = PaymentService.apply_payment(db_session, invoice.id, amount="10.00", method="cash")
    InvoiceService.cancel(db_session, invoice.id)

    with pytest.raises(InvoiceClosed):
        PaymentService.void_payment(db_session, payment.id)


def test_amount_spent_is_derived_from_non_voided_payments(db_session, make_invoice):
    first = make_invoice("100.00", client_id="acme", send=True)
    second = make_invoice("50.00", client_id="acme", send=True)
    other = make_invoice("70.00", client_id="globex", send=True)
    PaymentService.apply_payment(db_session, first.id, amount="100.00", method="cash")
    refunded = PaymentService.apply_payment(db_session, second.id, amount="20.00", method="cash")
    PaymentService.apply_payment(db_session, other.id, amount="70.00", method="cash")
    PaymentService.void_payment(db_session, refunded.id)

    assert PaymentService.amount_spent(db_session, "acme") == Money(10000, "USD")
    assert PaymentService.amount_spent(db_session, "globex") == Money(7000, "USD")
    assert PaymentService.amount_spent(db_session, "nobody") == Money(0, "USD")


def test_list_payments_filters(db_session, make_invoice):
    invoice = make_invoice("100.00", client_id="acme", send=True)
    kept = PaymentService.apply_payment(db_session, invoice.id, amount="10.00", method="cash")
    dropped = PaymentService.apply_payment(db_session, invoice.id, amount="5.00", method="check")
    PaymentService.void_payment(db_session, dropped.id)

    items, total = PaymentService.list_payments(db_session, invoice_id=invoice.id)
    assert total == 2

    items, total = PaymentService.list_payments(
        db_session, client_id="acme", include_voided=False
    )
    assert total == 1
    assert [payment.id for payment in items] == [kept.id]


def test_store_failure_rolls_back_payment_and_invoice(db_session, make_invoice, monkeypatch):
    invoice = make_invoice("100.00", send=True)
    original_flush = db_session.flush

    def locked(*_args, **_kwargs):
        raise OperationalError("UPDATE invoices", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "flush", locked)

    with pytest.raises(Conflict) as excinfo:
        PaymentService.apply_payment(db_session, invoice.id, amount="10.00", method="cash")

    assert excinfo.value.retryable is True
    monkeypatch.setattr(db_session, "flush", original_flush)
    db_session.expire_all()
    assert db_session.query(models.Payment).count() == 0
    assert InvoiceService.get(db_session, invoice.id).paid_minor == 0
