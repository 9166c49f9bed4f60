"""Invoice number allocation from the shared numbering policy."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .. import models
from ..config import get_settings
from ..exceptions import InvalidNumberingPolicy

SEQUENCE_WIDTH = 3
# Month-granular renderings of the issue date; ``%Y%m`` is the default.
SUPPORTED_PERIOD_FORMATS = ("%Y%m", "%Y-%m", "%y%m")


@dataclass(frozen=True)
class AllocatedNumber:
    """An issued number together with the policy it advanced."""

    number: str
    sequence: int
    policy: models.NumberingPolicy


class InvoiceNumberAllocator:
    """Formats and hands out invoice numbers.

    Numbers look like ``INV-202501-045``: prefix, the issue date rendered with
    the policy's period format, and the policy's lifetime sequence padded to
    three digits. The sequence is never reset when the period changes.
    """

    @staticmethod
    def format_number(prefix: str, period_format: str, issue_date: date, sequence: int) -> str:
        period_format = period_format or SUPPORTED_PERIOD_FORMATS[0]
        if period_format not in SUPPORTED_PERIOD_FORMATS:
            raise InvalidNumberingPolicy(f"Unsupported period format: {period_format}")
        period = issue_date.strftime(period_format)
        return f"{prefix}-{period}-{sequence:0{SEQUENCE_WIDTH}d}"

    @classmethod
    def allocate(cls, policy: models.NumberingPolicy, issue_date: date) -> AllocatedNumber:
        """Take the next number and return it with the advanced policy.

        The returned ``policy`` is the same ORM instance with ``next_sequence``
        moved past the issued number, so persisting it consumes the number.

        Callers must hold the policy row inside the transaction that also
        inserts the invoice; ``LedgerStore.create_invoice_with_number`` is the
        only caller that does.
        """

        sequence = int(policy.next_sequence or 1)
        number = cls.format_number(policy.prefix, policy.period_format, issue_date, sequence)
        policy.next_sequence = sequence + 1
        return AllocatedNumber(number=number, sequence=sequence, policy=policy)

    @classmethod
    def peek(cls, policy: models.NumberingPolicy, issue_date: Optional[date] = None) -> str:
        """Return the number the next invoice would get, without consuming it."""

        return cls.format_number(
            policy.prefix,
            policy.period_format,
            issue_date or date.today(),
            int(policy.next_sequence or 1),
        )


def default_policy() -> models.NumberingPolicy:
    settings = get_settings()
    return models.NumberingPolicy(
        id=models.NUMBERING_POLICY_ID,
        prefix=settings.invoice_prefix,
        next_sequence=1,
        period_format=settings.period_format,
        due_in_days=settings.invoice_due_in_days,
    )


__all__ = [
    "AllocatedNumber",
    "InvoiceNumberAllocator",
    "SUPPORTED_PERIOD_FORMATS",
    "default_policy",
]
