"""Custom SQLAlchemy column types shared by the ledger models."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.dialects import postgresql
from sqlalchemy.types import BigInteger, CHAR, TypeDecorator

from .money import Money


class GUID(TypeDecorator):
    """Platform-independent UUID column.

    Native ``UUID`` on PostgreSQL, a 36-character string elsewhere. Values are
    always handed back to Python as strings.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return str(value)


class MinorUnits(TypeDecorator):
    """Integer column holding an amount in minor currency units.

    Accepts either a plain ``int`` or a :class:`Money` on write; reads always
    return ``int`` because the currency lives in a sibling column.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if isinstance(value, Money):
            return value.minor_units
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"MinorUnits columns only store integers, got {value!r}")
        return value

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return int(value)
