"""Read and configure the numbering policy singleton."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..exceptions import (
    InvalidDateRange,
    InvalidNumberingPolicy,
    InvalidTransition,
    LedgerError,
)
from .ledger_store import LedgerStore
from .numbering import SUPPORTED_PERIOD_FORMATS

LOGGER = logging.getLogger(__name__)


class NumberingPolicyService:
    """Settings operations for the invoice numbering policy."""

    @staticmethod
    def get_policy(db: Session) -> models.NumberingPolicy:
        return LedgerStore(db).ensure_policy()

    @staticmethod
    def configure(
        db: Session,
        *,
        prefix: Optional[str] = None,
        period_format: Optional[str] = None,
        due_in_days: Optional[int] = None,
        next_sequence: Optional[int] = None,
    ) -> models.NumberingPolicy:
        """Update the policy.

        ``next_sequence`` may only move forward so previously issued numbers
        are never handed out again.
        """

        store = LedgerStore(db)
        try:
            policy = store.get_policy(for_update=True)
            cleaned = prefix.strip() if prefix is not None else None
            if cleaned is not None and (not cleaned or any(char.isspace() for char in cleaned)):
                raise InvalidNumberingPolicy("prefix must be a non-empty token without spaces")
            if period_format is not None and period_format not in SUPPORTED_PERIOD_FORMATS:
                raise InvalidNumberingPolicy(
                    "period_format must be one of " + ", ".join(SUPPORTED_PERIOD_FORMATS)
                )
            if due_in_days is not None and due_in_days < 0:
                raise InvalidDateRange("due_in_days cannot be negative")
            if next_sequence is not None and next_sequence < int(policy.next_sequence):
                raise InvalidTransition(
                    f"next_sequence cannot move backwards from {policy.next_sequence}"
                )
        except LedgerError:
            store.rollback()
            raise

        if cleaned is not None:
            policy.prefix = cleaned
        if period_format is not None:
            policy.period_format = period_format
        if due_in_days is not None:
            policy.due_in_days = due_in_days
        if next_sequence is not None:
            policy.next_sequence = next_sequence

        store.save_policy(policy)
        LOGGER.info(
            "Numbering policy updated",
            extra={"prefix": policy.prefix, "next_sequence": policy.next_sequence},
        )
        return policy


__all__ = ["NumberingPolicyService"]
