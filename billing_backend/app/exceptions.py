"""Error kinds raised by the billing ledger."""

from __future__ import annotations


class LedgerError(RuntimeError):
    """Base class for every ledger failure.

    ``code`` is the stable error kind reported to callers and ``retryable``
    tells them whether repeating the whole operation may succeed without
    changing the input.
    """

    code = "ledger_error"
    retryable = False

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class InvalidRate(LedgerError):
    code = "invalid_rate"


class InvalidDateRange(LedgerError):
    code = "invalid_date_range"


class EmptyLineItems(LedgerError):
    code = "empty_line_items"


class CurrencyMismatch(LedgerError):
    code = "currency_mismatch"


class InvalidPaymentMethod(LedgerError):
    code = "invalid_payment_method"


class InvalidNumberingPolicy(LedgerError):
    """Raised for a numbering policy setting that cannot produce valid numbers."""

    code = "invalid_numbering_policy"


class OverpaymentRejected(LedgerError):
    """Raised when a payment would push the paid amount past the total."""

    code = "overpayment_rejected"

    def __init__(self, remaining: object):
        super().__init__(f"Payment exceeds remaining balance of {remaining}")
        self.remaining = remaining


class InvoiceClosed(LedgerError):
    """Raised when a paid or cancelled invoice is asked to change."""

    code = "invoice_closed"


class InvalidTransition(LedgerError):
    """Raised for a lifecycle move the current status does not allow."""

    code = "invalid_transition"


class HasPayments(LedgerError):
    code = "has_payments"


class NotFound(LedgerError):
    code = "not_found"


class Conflict(LedgerError):
    """Concurrent modification detected; re-read and retry the whole operation."""

    code = "conflict"
    retryable = True


class LedgerStoreError(LedgerError):
    """Raised when the store cannot complete a write for a non-conflict reason."""

    code = "store_error"
    retryable = True


VALIDATION_ERRORS = (
    InvalidAmount,
    InvalidRate,
    InvalidDateRange,
    EmptyLineItems,
    CurrencyMismatch,
    InvalidPaymentMethod,
    InvalidNumberingPolicy,
)

__all__ = [
    "Conflict",
    "CurrencyMismatch",
    "EmptyLineItems",
    "HasPayments",
    "InvalidAmount",
    "InvalidDateRange",
    "InvalidNumberingPolicy",
    "InvalidPaymentMethod",
    "InvalidRate",
    "InvalidTransition",
    "InvoiceClosed",
    "LedgerError",
    "LedgerStoreError",
    "NotFound",
    "OverpaymentRejected",
    "VALIDATION_ERRORS",
]
