"""Router exposing invoice lifecycle operations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import get_settings
from ..database import get_db
from ..exceptions import LedgerError
from ..services import InvoiceService
from .errors import ledger_http_error

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=schemas.InvoiceListResponse)
def list_invoices(
    db: Session = Depends(get_db),
    client_id: Optional[str] = Query(None, description="Filter by client identifier"),
    status_filter: Optional[models.InvoiceStatus] = Query(
        None,
        alias="status",
        description="Filter by status; 'overdue' returns unpaid invoices past their due date",
    ),
    today: Optional[date] = Query(None, description="Reference date for overdue checks"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=200, description="Maximum number of records to return"),
) -> schemas.InvoiceListResponse:
    items, total = InvoiceService.list_invoices(
        db,
        client_id=client_id,
        status=status_filter,
        today=today,
        skip=skip,
        limit=limit,
    )
    return schemas.InvoiceListResponse(
        items=[schemas.InvoiceRead.from_invoice(invoice, today) for invoice in items],
        total=total,
        limit=limit,
        skip=skip,
    )


@router.post("", response_model=schemas.InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_in: schemas.InvoiceCreate, db: Session = Depends(get_db)
) -> schemas.InvoiceDetail:
    """Create a draft invoice with the next number from the policy."""

    currency = (invoice_in.currency or get_settings().currency).upper()
    try:
        invoice = InvoiceService.create(
            db,
            client_id=invoice_in.client_id,
            line_items=[item.to_line_item(currency) for item in invoice_in.line_items],
            tax_rate=invoice_in.tax_rate,
            discount_rate=invoice_in.discount_rate,
            issue_date=invoice_in.issue_date,
            due_in_days=invoice_in.due_in_days,
            notes=invoice_in.notes,
            currency=currency,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice)


@router.get("/{invoice_id}", response_model=schemas.InvoiceDetail)
def get_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    today: Optional[date] = Query(None, description="Reference date for overdue checks"),
) -> schemas.InvoiceDetail:
    try:
        invoice = InvoiceService.get(db, invoice_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice, today)


@router.patch("/{invoice_id}", response_model=schemas.InvoiceDetail)
def update_invoice(
    invoice_id: str,
    invoice_in: schemas.InvoiceUpdate,
    db: Session = Depends(get_db),
) -> schemas.InvoiceDetail:
    """Edit a draft invoice; sent or paid invoices are frozen."""

    try:
        line_items = None
        if invoice_in.line_items is not None:
            currency = InvoiceService.get(db, invoice_id).currency
            line_items = [item.to_line_item(currency) for item in invoice_in.line_items]
        invoice = InvoiceService.update_draft(
            db,
            invoice_id,
            line_items=line_items,
            tax_rate=invoice_in.tax_rate,
            discount_rate=invoice_in.discount_rate,
            notes=invoice_in.notes,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice)


@router.post("/{invoice_id}/send", response_model=schemas.InvoiceDetail)
def send_invoice(invoice_id: str, db: Session = Depends(get_db)) -> schemas.InvoiceDetail:
    try:
        invoice = InvoiceService.send(db, invoice_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice)


@router.post("/{invoice_id}/cancel", response_model=schemas.InvoiceDetail)
def cancel_invoice(invoice_id: str, db: Session = Depends(get_db)) -> schemas.InvoiceDetail:
    try:
        invoice = InvoiceService.cancel(db, invoice_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.InvoiceDetail.from_invoice(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(invoice_id: str, db: Session = Depends(get_db)) -> Response:
    try:
        InvoiceService.delete(db, invoice_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
