"""Billing ledger application package."""

from __future__ import annotations


def get_app():
    """Return the FastAPI application without importing it eagerly.

    Alembic and the maintenance scripts import ``billing_backend.app`` but do
    not need FastAPI or the routers loaded.
    """

    from .main import app as fastapi_app

    return fastapi_app


__all__ = ["get_app"]
