"""Runtime settings for the billing ledger, read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache

CURRENCY_ENV = "LEDGER_CURRENCY"
DEFAULT_TAX_RATE_ENV = "LEDGER_DEFAULT_TAX_RATE"
INVOICE_PREFIX_ENV = "LEDGER_INVOICE_PREFIX"
INVOICE_DUE_IN_DAYS_ENV = "LEDGER_INVOICE_DUE_IN_DAYS"
RUN_MIGRATIONS_ENV = "RUN_MIGRATIONS_ON_STARTUP"

DEFAULT_CURRENCY = "USD"
DEFAULT_INVOICE_PREFIX = "INV"
DEFAULT_DUE_IN_DAYS = 30
DEFAULT_PERIOD_FORMAT = "%Y%m"


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def read_decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number") from exc


@dataclass(frozen=True)
class LedgerSettings:
    """Defaults applied when the numbering policy or a request omits a value."""

    currency: str = DEFAULT_CURRENCY
    default_tax_rate: Decimal = Decimal("0")
    invoice_prefix: str = DEFAULT_INVOICE_PREFIX
    invoice_due_in_days: int = DEFAULT_DUE_IN_DAYS
    period_format: str = DEFAULT_PERIOD_FORMAT
    run_migrations_on_startup: bool = True


@lru_cache(maxsize=1)
def get_settings() -> LedgerSettings:
    currency = (os.getenv(CURRENCY_ENV) or DEFAULT_CURRENCY).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(f"{CURRENCY_ENV} must be a three-letter ISO 4217 code")

    tax_rate = read_decimal_env(DEFAULT_TAX_RATE_ENV, Decimal("0"))
    if tax_rate < 0 or tax_rate > 100:
        raise ValueError(f"{DEFAULT_TAX_RATE_ENV} must be between 0 and 100")

    prefix = (os.getenv(INVOICE_PREFIX_ENV) or DEFAULT_INVOICE_PREFIX).strip()

    return LedgerSettings(
        currency=currency,
        default_tax_rate=tax_rate,
        invoice_prefix=prefix or DEFAULT_INVOICE_PREFIX,
        invoice_due_in_days=read_int_env(INVOICE_DUE_IN_DAYS_ENV, DEFAULT_DUE_IN_DAYS),
        run_migrations_on_startup=read_bool_env(RUN_MIGRATIONS_ENV, True),
    )


def reset_settings_cache() -> None:
    """Forget cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()


__all__ = [
    "LedgerSettings",
    "get_settings",
    "reset_settings_cache",
    "read_bool_env",
    "read_decimal_env",
    "read_int_env",
]
