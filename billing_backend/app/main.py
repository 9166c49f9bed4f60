"""Expose the billing ledger FastAPI app."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import get_settings
from .migrations import run_database_migrations
from .routers import clients_router, invoices_router, payments_router, settings_router

LOGGER = logging.getLogger(__name__)


def ensure_database_is_ready() -> None:
    """Apply pending database migrations when the service starts."""

    if not get_settings().run_migrations_on_startup:
        LOGGER.info("Skipping database migrations; RUN_MIGRATIONS_ON_STARTUP is off")
        return
    LOGGER.info("Ensuring database schema is up to date before serving requests")
    run_database_migrations()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    yield


app = FastAPI(title="Billing Ledger API", lifespan=lifespan)

app.include_router(invoices_router, prefix="/invoices", tags=["invoices"])
app.include_router(payments_router, prefix="/payments", tags=["payments"])
app.include_router(clients_router, prefix="/clients", tags=["clients"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}
