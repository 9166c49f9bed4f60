"""CLI utility to reconcile invoice balances with the payment log."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import Optional

from ..database import session_scope
from ..services.ledger_consistency import LedgerConsistencyService

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Compare each invoice's stored paid amount and status with its "
            "non-voided payments. Suitable for cron or scheduled jobs."
        )
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD) for the overdue report. Defaults to today.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every mismatch found, not just the counts.",
    )
    return parser.parse_args(argv)


def _log_mismatches(label: str, items: list) -> None:
    if not items:
        LOGGER.info("%s: none", label)
        return
    LOGGER.warning("%s: %s found", label, len(items))
    for item in items:
        LOGGER.debug("%s detail: %s", label, item)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    with session_scope() as db:
        snapshot = LedgerConsistencyService.check(db, today=args.as_of)

    _log_mismatches("Invoices whose paid amount differs from payments", snapshot.paid_mismatches)
    _log_mismatches("Invoices whose status differs from their balance", snapshot.status_mismatches)
    _log_mismatches("Invoices paid beyond their total", snapshot.overpaid_invoices)
    _log_mismatches("Payments in a different currency than their invoice", snapshot.currency_mismatches)
    LOGGER.info("Overdue invoices: %s", len(snapshot.overdue_invoices))

    LOGGER.info("Ledger reconciliation finished")
    return 0 if snapshot.is_consistent else 1


if __name__ == "__main__":
    raise SystemExit(main())
