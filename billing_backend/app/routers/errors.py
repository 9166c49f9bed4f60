"""Translate ledger errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from ..exceptions import (
    VALIDATION_ERRORS,
    Conflict,
    HasPayments,
    InvalidTransition,
    InvoiceClosed,
    LedgerError,
    LedgerStoreError,
    NotFound,
    OverpaymentRejected,
)

LOGGER = logging.getLogger(__name__)

ERROR_CODE_HEADER = "X-Ledger-Error"

_STATUS_BY_ERROR: tuple[tuple[tuple[type[LedgerError], ...], int], ...] = (
    ((NotFound,), status.HTTP_404_NOT_FOUND),
    ((Conflict, InvoiceClosed, HasPayments, InvalidTransition), status.HTTP_409_CONFLICT),
    ((OverpaymentRejected, *VALIDATION_ERRORS), status.HTTP_422_UNPROCESSABLE_ENTITY),
    ((LedgerStoreError,), status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: LedgerError) -> int:
    for kinds, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, kinds):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def ledger_http_error(exc: LedgerError) -> HTTPException:
    """Build the ``HTTPException`` a router raises for ``exc``."""

    status_code = status_for(exc)
    headers = {ERROR_CODE_HEADER: exc.code}
    if exc.retryable:
        headers["Retry-After"] = "0"
    if status_code >= 500:
        LOGGER.error("Ledger store failure", extra={"code": exc.code}, exc_info=exc)
    return HTTPException(status_code=status_code, detail=exc.message, headers=headers)


__all__ = ["ERROR_CODE_HEADER", "ledger_http_error", "status_for"]
