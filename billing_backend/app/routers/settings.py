"""Router exposing the invoice numbering policy."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..exceptions import LedgerError
from ..services import InvoiceNumberAllocator, NumberingPolicyService
from .errors import ledger_http_error

router = APIRouter()


def _policy_read(policy: models.NumberingPolicy) -> schemas.NumberingPolicyRead:
    return schemas.NumberingPolicyRead(
        prefix=policy.prefix,
        next_sequence=policy.next_sequence,
        period_format=policy.period_format,
        due_in_days=policy.due_in_days,
        next_number=InvoiceNumberAllocator.peek(policy),
        updated_at=policy.updated_at,
    )


@router.get("/numbering", response_model=schemas.NumberingPolicyRead)
def get_numbering_policy(db: Session = Depends(get_db)) -> schemas.NumberingPolicyRead:
    try:
        policy = NumberingPolicyService.get_policy(db)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return _policy_read(policy)


@router.put("/numbering", response_model=schemas.NumberingPolicyRead)
def update_numbering_policy(
    policy_in: schemas.NumberingPolicyUpdate, db: Session = Depends(get_db)
) -> schemas.NumberingPolicyRead:
    """Change the prefix, period format or due-in days, or skip the counter ahead."""

    try:
        policy = NumberingPolicyService.configure(
            db,
            prefix=policy_in.prefix,
            period_format=policy_in.period_format,
            due_in_days=policy_in.due_in_days,
            next_sequence=policy_in.next_sequence,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return _policy_read(policy)
