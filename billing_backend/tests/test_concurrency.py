from __future__ import annotations

import threading
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from billing_backend.app import models
from billing_backend.app.database import Base
from billing_backend.app.exceptions import Conflict, OverpaymentRejected
from billing_backend.app.money import Money
from billing_backend.app.services import (
    InvoiceService,
    LedgerStore,
    LineItem,
    PaymentService,
)


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(file_engine):
    return sessionmaker(bind=file_engine, autocommit=False, autoflush=False)


def _create_invoice(session, amount_minor: int = 10000) -> models.Invoice:
    invoice = InvoiceService.create(
        session,
        client_id="client-1",
        line_items=[LineItem(id="svc", unit_price=Money(amount_minor, "USD"))],
        issue_date=date(2025, 1, 15),
    )
    return InvoiceService.send(session, invoice.id)


def test_payment_based_on_stale_invoice_is_a_conflict(session_factory):
    setup = session_factory()
    invoice_id = _create_invoice(setup).id
    setup.close()

    first, second = session_factory(), session_factory()
    try:
        stale = LedgerStore(second).get_invoice(invoice_id)
        assert stale.paid_minor == 0

        PaymentService.apply_payment(first, invoice_id, amount="60.00", method="cash")

        stale.paid_minor = 6000
        stale.status = InvoiceService.derive_status(stale)
        payment = models.Payment(
            invoice=stale,
            client_id=stale.client_id,
            amount_minor=6000,
            currency="USD",
            method=models.PaymentMethod.CASH,
            payment_date=date(2025, 1, 20),
        )
        audit = models.PaymentAuditLog(
            payment=payment,
            invoice_id=stale.id,
            action=models.PaymentAuditAction.CREATED,
        )
        with pytest.raises(Conflict) as excinfo:
            LedgerStore(second).record_payment(stale, payment, audit)
        assert excinfo.value.retryable is True
    finally:
        first.close()
        second.close()

    check = session_factory()
    try:
        invoice = InvoiceService.get(check, invoice_id)
        assert invoice.paid_amount == Money(6000, "USD")
        assert check.query(models.Payment).count() == 1
    finally:
        check.close()


def test_second_payment_sees_updated_balance(session_factory):
    setup = session_factory()
    invoice_id = _create_invoice(setup).id
    setup.close()

    first, second = session_factory(), session_factory()
    try:
        PaymentService.apply_payment(first, invoice_id, amount="60.00", method="cash")
        with pytest.raises(OverpaymentRejected):
            PaymentService.apply_payment(second, invoice_id, amount="60.00", method="cash")
    finally:
        first.close()
        second.close()

    check = session_factory()
    try:
        invoice = InvoiceService.get(check, invoice_id)
        assert invoice.paid_amount == Money(6000, "USD")
        assert invoice.status == models.InvoiceStatus.PARTIALLY_PAID
    finally:
        check.close()


def _run_with_retries(operation, attempts: int = 50):
    for _ in range(attempts):
        try:
            return operation()
        except Conflict:
            continue
    raise AssertionError("operation kept conflicting")


def test_concurrent_payments_never_exceed_total(session_factory):
    setup = session_factory()
    invoice_id = _create_invoice(setup).id
    setup.close()

    outcomes: list[str] = []
    lock = threading.Lock()

    def pay() -> None:
        session = session_factory()
        try:
            _run_with_retries(
                lambda: PaymentService.apply_payment(
                    session, invoice_id, amount="60.00", method="cash"
                )
            )
            result = "applied"
        except OverpaymentRejected:
            result = "rejected"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=pay) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["applied", "rejected"]
    check = session_factory()
    try:
        invoice = InvoiceService.get(check, invoice_id)
        assert invoice.paid_amount == Money(6000, "USD")
        assert invoice.paid_minor <= invoice.total_minor
    finally:
        check.close()


def test_concurrent_creates_get_unique_numbers(session_factory):
    setup = session_factory()
    LedgerStore(setup).ensure_policy()
    setup.close()

    workers = 8
    numbers: list[str] = []
    errors: list[BaseException] = []
    lock = threading.Lock()

    def create() -> None:
        session = session_factory()
        try:
            invoice = _run_with_retries(
                lambda: InvoiceService.create(
                    session,
                    client_id="client-1",
                    line_items=[LineItem(id="svc", unit_price=Money(1000, "USD"))],
                    issue_date=date(2025, 1, 15),
                )
            )
            with lock:
                numbers.append(invoice.number)
        except BaseException as exc:  # surfaced by the assertion below
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=create) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(numbers) == workers
    assert len(set(numbers)) == workers
    check = session_factory()
    try:
        assert LedgerStore(check).get_policy().next_sequence == workers + 1
        assert check.query(models.Invoice).count() == workers
    finally:
        check.close()
