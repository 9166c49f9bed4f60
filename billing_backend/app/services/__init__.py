"""Service layer encapsulating business logic for API routers."""

from .invoices import InvoiceService
from .ledger_consistency import LedgerConsistencyService
from .ledger_store import LedgerStore
from .numbering import InvoiceNumberAllocator
from .numbering_policy import NumberingPolicyService
from .payments import PaymentService
from .totals import InvoiceTotals, LineItem, TotalsCalculator

__all__ = [
    "InvoiceNumberAllocator",
    "InvoiceService",
    "InvoiceTotals",
    "LedgerConsistencyService",
    "LedgerStore",
    "LineItem",
    "NumberingPolicyService",
    "PaymentService",
    "TotalsCalculator",
]
