"""Router exposing payment related operations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..exceptions import LedgerError
from ..services import PaymentService
from .errors import ledger_http_error

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=schemas.PaymentListResponse)
def list_payments(
    db: Session = Depends(get_db),
    invoice_id: Optional[str] = Query(None, description="Filter by invoice identifier"),
    client_id: Optional[str] = Query(None, description="Filter by client identifier"),
    include_voided: bool = Query(True, description="Include voided payments"),
    start_date: Optional[date] = Query(None, description="Return payments on or after this date"),
    end_date: Optional[date] = Query(None, description="Return payments on or before this date"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of records to return"),
) -> schemas.PaymentListResponse:
    """Return payments with pagination and filters."""

    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date cannot be after end_date",
        )

    items, total = PaymentService.list_payments(
        db,
        invoice_id=invoice_id,
        client_id=client_id,
        include_voided=include_voided,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )
    return schemas.PaymentListResponse(
        items=[schemas.PaymentRead.from_payment(payment) for payment in items],
        total=total,
        limit=limit,
        skip=skip,
    )


@router.post("", response_model=schemas.PaymentRead, status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_in: schemas.PaymentCreate, db: Session = Depends(get_db)
) -> schemas.PaymentRead:
    """Apply a payment to an invoice and update its balance."""

    try:
        payment = PaymentService.apply_payment(
            db,
            payment_in.invoice_id,
            amount=payment_in.amount,
            method=payment_in.method,
            payment_date=payment_in.payment_date,
            reference=payment_in.reference,
            notes=payment_in.notes,
            recorded_by=payment_in.recorded_by,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.PaymentRead.from_payment(payment)


@router.get("/{payment_id}", response_model=schemas.PaymentRead)
def get_payment(payment_id: str, db: Session = Depends(get_db)) -> schemas.PaymentRead:
    try:
        payment = PaymentService.get_payment(db, payment_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.PaymentRead.from_payment(payment)


@router.post("/{payment_id}/void", response_model=schemas.InvoiceDetail)
def void_payment(
    payment_id: str,
    void_in: Optional[schemas.PaymentVoid] = None,
    db: Session = Depends(get_db),
) -> schemas.InvoiceDetail:
    """Void a payment and return the invoice with its restored balance."""

    void_in = void_in or schemas.PaymentVoid()
    try:
        invoice = PaymentService.void_payment(
            db,
            payment_id,
            reason=void_in.reason,
            performed_by=void_in.performed_by,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice)
