from __future__ import annotations

from datetime import date

from billing_backend.app import models
from billing_backend.app.services import LedgerConsistencyService, PaymentService
from billing_backend.app.scripts import overdue_invoices, reconcile_ledger


def test_consistent_ledger_reports_no_findings(db_session, make_invoice):
    invoice = make_invoice("100.00", issue_date=date(2025, 1, 1), send=True)
    PaymentService.apply_payment(db_session, invoice.id, amount="30.00", method="cash")

    snapshot = LedgerConsistencyService.check(db_session, today=date(2025, 3, 1))

    assert snapshot.is_consistent
    assert snapshot.paid_mismatches == []
    assert snapshot.status_mismatches == []
    assert snapshot.overdue_invoices == [invoice.number]


def test_drift_between_invoice_and_payments_is_flagged(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    PaymentService.apply_payment(db_session, invoice.id, amount="30.00", method="cash")

    # Simulate a write that bypassed the ledger.
    stored = db_session.get(models.Invoice, invoice.id)
    stored.paid_minor = 5000
    db_session.commit()

    snapshot = LedgerConsistencyService.check(db_session, today=date(2025, 1, 20))

    assert not snapshot.is_consistent
    assert len(snapshot.paid_mismatches) == 1
    mismatch = snapshot.paid_mismatches[0]
    assert mismatch.invoice_number == invoice.number
    assert mismatch.stored_paid_minor == 5000
    assert mismatch.payments_paid_minor == 3000


def test_status_drift_is_flagged(db_session, make_invoice):
    invoice = make_invoice("100.00", send=True)
    stored = db_session.get(models.Invoice, invoice.id)
    stored.status = models.InvoiceStatus.PAID
    db_session.commit()

    snapshot = LedgerConsistencyService.check(db_session)

    assert [item.derived_status for item in snapshot.status_mismatches] == ["sent"]


def test_reconcile_cli_exit_code_reflects_findings(db_session, make_invoice, monkeypatch):
    invoice = make_invoice("100.00", send=True)

    class _Scope:
        def __enter__(self):
            return db_session

        def __exit__(self, *_exc):
            return False

    monkeypatch.setattr(reconcile_ledger, "session_scope", lambda: _Scope())
    assert reconcile_ledger.main(["--as-of", "2025-01-20"]) == 0

    stored = db_session.get(models.Invoice, invoice.id)
    stored.status = models.InvoiceStatus.CANCELLED
    stored.paid_minor = 100
    db_session.commit()
    assert reconcile_ledger.main([]) == 1


def test_overdue_cli_lists_past_due_invoices(db_session, make_invoice, monkeypatch, caplog):
    overdue = make_invoice("100.00", client_id="acme", issue_date=date(2025, 1, 1), send=True)
    make_invoice("100.00", client_id="acme", issue_date=date(2025, 3, 1), send=True)

    class _Scope:
        def __enter__(self):
            return db_session

        def __exit__(self, *_exc):
            return False

    monkeypatch.setattr(overdue_invoices, "session_scope", lambda: _Scope())
    caplog.set_level("INFO", logger=overdue_invoices.__name__)

    assert overdue_invoices.main(["--as-of", "2025-03-05", "--client-id", "acme"]) == 0
    assert overdue.number in caplog.text
    assert "1 overdue invoice(s) as of 2025-03-05" in caplog.text
