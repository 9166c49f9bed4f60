"""Expose Pydantic schemas for convenient imports."""

from .common import MoneyRead, PaginatedResponse
from .invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceLineRead,
    InvoiceListResponse,
    InvoiceRead,
    InvoiceUpdate,
    LineItemIn,
)
from .numbering import NumberingPolicyRead, NumberingPolicyUpdate
from .payment import (
    AmountSpentRead,
    PaymentCreate,
    PaymentListResponse,
    PaymentRead,
    PaymentVoid,
)

__all__ = [
    "AmountSpentRead",
    "InvoiceCreate",
    "InvoiceDetail",
    "InvoiceLineRead",
    "InvoiceListResponse",
    "InvoiceRead",
    "InvoiceUpdate",
    "LineItemIn",
    "MoneyRead",
    "NumberingPolicyRead",
    "NumberingPolicyUpdate",
    "PaginatedResponse",
    "PaymentCreate",
    "PaymentListResponse",
    "PaymentRead",
    "PaymentVoid",
]
