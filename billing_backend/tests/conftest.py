from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root (which exposes the ``billing_backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "0"

from billing_backend.app import models  # noqa: E402
from billing_backend.app.config import reset_settings_cache  # noqa: E402
from billing_backend.app.database import Base, get_db  # noqa: E402
from billing_backend.app.main import app  # noqa: E402
from billing_backend.app.money import Money  # noqa: E402
from billing_backend.app.services import InvoiceService, LineItem  # noqa: E402


@pytest.fixture(autouse=True)
def ledger_settings(monkeypatch) -> Generator[None, None, None]:
    monkeypatch.setenv("LEDGER_CURRENCY", "USD")
    monkeypatch.setenv("LEDGER_DEFAULT_TAX_RATE", "0")
    monkeypatch.setenv("LEDGER_INVOICE_PREFIX", "INV")
    monkeypatch.setenv("LEDGER_INVOICE_DUE_IN_DAYS", "30")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "0")
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def engine():
    # Services commit their own transactions, so every test gets a fresh database.
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def numbering_policy(db_session: Session) -> models.NumberingPolicy:
    policy = models.NumberingPolicy(
        id=models.NUMBERING_POLICY_ID,
        prefix="INV",
        next_sequence=1,
        period_format="%Y%m",
        due_in_days=30,
    )
    db_session.add(policy)
    db_session.commit()
    return policy


def usd(amount: str) -> Money:
    return Money.from_major_units(Decimal(amount), "USD")


def line_items(*prices: str) -> list[LineItem]:
    return [
        LineItem(id=f"item-{index}", unit_price=usd(price), description=f"Service {index}")
        for index, price in enumerate(prices, start=1)
    ]


@pytest.fixture
def make_invoice(db_session: Session, numbering_policy) -> Callable[..., models.Invoice]:
    def _make_invoice(
        *prices: str,
        client_id: str = "client-1",
        tax_rate: str | None = None,
        discount_rate: str | None = None,
        issue_date: date = date(2025, 1, 15),
        send: bool = False,
    ) -> models.Invoice:
        invoice = InvoiceService.create(
            db_session,
            client_id=client_id,
            line_items=line_items(*(prices or ("100.00",))),
            tax_rate=tax_rate,
            discount_rate=discount_rate,
            issue_date=issue_date,
        )
        if send:
            invoice = InvoiceService.send(db_session, invoice.id)
        return invoice

    return _make_invoice
