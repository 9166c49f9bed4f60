from __future__ import annotations

from datetime import date

from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

from billing_backend.app.database import Base
from billing_backend.app.migrations import build_alembic_config, run_database_migrations
from billing_backend.app.money import Money
from billing_backend.app.services import InvoiceService, LineItem, PaymentService


def test_run_database_migrations_creates_ledger_schema(tmp_path) -> None:
    url = f"sqlite:///{(tmp_path / 'migrated.db').as_posix()}"

    run_database_migrations(url)

    engine = create_engine(url, connect_args={"check_same_thread": False})
    try:
        inspector = inspect(engine)
        for table in Base.metadata.tables.values():
            assert inspector.has_table(table.name), table.name
            migrated = {column["name"] for column in inspector.get_columns(table.name)}
            assert migrated == {column.name for column in table.columns}, table.name

        with engine.connect() as connection:
            version = connection.scalar(text("SELECT version_num FROM alembic_version"))
        expected_head = ScriptDirectory.from_config(build_alembic_config(url)).get_current_head()
        assert version == expected_head
    finally:
        engine.dispose()


def test_migrated_schema_supports_ledger_writes(tmp_path) -> None:
    url = f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}"
    run_database_migrations(url)
    run_database_migrations(url)

    engine = create_engine(url, connect_args={"check_same_thread": False})
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        invoice = InvoiceService.create(
            session,
            client_id="client-1",
            line_items=[LineItem(id="svc", unit_price=Money(5000, "USD"))],
            issue_date=date(2025, 1, 15),
        )
        PaymentService.apply_payment(session, invoice.id, amount="20.00", method="cash")

        assert invoice.number == "INV-202501-001"
        assert InvoiceService.get(session, invoice.id).paid_minor == 2000
    finally:
        session.close()
        engine.dispose()
