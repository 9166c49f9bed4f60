"""Router exposing per-client ledger figures."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..exceptions import LedgerError
from ..schemas.common import MoneyRead
from ..services import PaymentService
from .errors import ledger_http_error

router = APIRouter()


@router.get("/{client_id}/amount-spent", response_model=schemas.AmountSpentRead)
def get_amount_spent(
    client_id: str,
    db: Session = Depends(get_db),
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
) -> schemas.AmountSpentRead:
    """Sum of the client's non-voided payments."""

    try:
        spent = PaymentService.amount_spent(db, client_id, currency)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.AmountSpentRead(client_id=client_id, amount_spent=MoneyRead.from_money(spent))
