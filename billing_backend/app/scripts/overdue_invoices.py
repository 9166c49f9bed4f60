"""CLI report of invoices that are past due and still unpaid."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import Optional

from ..database import session_scope
from ..services.invoices import InvoiceService

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List invoices whose due date has passed with a balance outstanding."
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument("--client-id", default=None, help="Only report this client.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    reference = args.as_of or date.today()

    with session_scope() as db:
        rows = [
            (invoice.number, invoice.client_id, invoice.due_date, str(invoice.remaining))
            for invoice in InvoiceService.list_overdue(db, reference)
            if args.client_id is None or invoice.client_id == args.client_id
        ]

    for number, client_id, due_date, remaining in rows:
        LOGGER.info(
            "%s client=%s due=%s outstanding=%s",
            number,
            client_id,
            due_date.isoformat(),
            remaining,
        )
    LOGGER.info("%s overdue invoice(s) as of %s", len(rows), reference.isoformat())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
