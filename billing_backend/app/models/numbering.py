"""Singleton row holding the invoice numbering counter."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func

from ..database import Base

NUMBERING_POLICY_ID = 1


class NumberingPolicy(Base):
    """Prefix, next sequence and due-date policy used when issuing invoices.

    There is exactly one row (``id == NUMBERING_POLICY_ID``). The counter is
    only advanced by the ledger store while it inserts an invoice.
    """

    __tablename__ = "numbering_policies"
    __table_args__ = (
        CheckConstraint("next_sequence >= 1", name="ck_numbering_next_sequence_positive"),
        CheckConstraint("due_in_days >= 0", name="ck_numbering_due_in_days_non_negative"),
    )

    id = Column("policy_id", Integer, primary_key=True, default=NUMBERING_POLICY_ID)
    prefix = Column(String(20), nullable=False, default="INV")
    next_sequence = Column(Integer, nullable=False, default=1)
    period_format = Column(String(20), nullable=False, default="%Y%m")
    due_in_days = Column(Integer, nullable=False, default=30)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}
