"""Routers package."""

from .clients import router as clients_router
from .invoices import router as invoices_router
from .payments import router as payments_router
from .settings import router as settings_router

__all__ = [
    "clients_router",
    "invoices_router",
    "payments_router",
    "settings_router",
]
