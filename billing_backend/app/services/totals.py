"""Invoice totals: subtotal, tax, discount and grand total."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from ..exceptions import CurrencyMismatch, InvalidRate
from ..money import Money, sum_money

RATE_STEP = Decimal("0.001")
MIN_RATE = Decimal("0")
MAX_RATE = Decimal("100")


@dataclass(frozen=True)
class LineItem:
    """A priced, billable item resolved by the caller before invoicing."""

    id: str
    unit_price: Money
    description: Optional[str] = None


@dataclass(frozen=True)
class InvoiceTotals:
    """Result of a totals computation."""

    subtotal: Money
    tax_rate: Decimal
    discount_rate: Decimal
    tax_amount: Money
    discount_amount: Money
    total: Money


class TotalsCalculator:
    """Derive invoice amounts from line items and percentage rates."""

    @staticmethod
    def normalize_rate(rate: Decimal | int | str | None, *, label: str = "rate") -> Decimal:
        if rate is None:
            return Decimal("0").quantize(RATE_STEP)
        try:
            value = rate if isinstance(rate, Decimal) else Decimal(str(rate).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidRate(f"{label} must be a number between 0 and 100") from exc
        if not value.is_finite() or value < MIN_RATE or value > MAX_RATE:
            raise InvalidRate(f"{label} must be between 0 and 100, got {rate}")
        # Stored rates keep three decimals; finer input rounds half up.
        return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)

    @classmethod
    def compute(
        cls,
        line_items: Iterable[LineItem],
        tax_rate: Decimal | int | str | None,
        discount_rate: Decimal | int | str | None,
        *,
        currency: str,
    ) -> InvoiceTotals:
        """Return the totals for ``line_items``.

        ``total = max(0, subtotal + tax - discount)`` where tax and discount are
        percentages of the subtotal, each rounded half up to the minor unit.
        The result only depends on the multiset of prices, never their order.
        """

        normalized_tax = cls.normalize_rate(tax_rate, label="tax_rate")
        normalized_discount = cls.normalize_rate(discount_rate, label="discount_rate")

        prices = []
        for item in line_items:
            if item.unit_price.currency != Money.zero(currency).currency:
                raise CurrencyMismatch(
                    f"Line item {item.id} is priced in {item.unit_price.currency}, "
                    f"invoice currency is {currency}"
                )
            prices.append(item.unit_price)

        subtotal = sum_money(prices, currency)
        tax_amount = subtotal.percent_of(normalized_tax)
        discount_amount = subtotal.percent_of(normalized_discount)
        total = max(subtotal.add(tax_amount).subtract(discount_amount), Money.zero(currency))

        return InvoiceTotals(
            subtotal=subtotal,
            tax_rate=normalized_tax,
            discount_rate=normalized_discount,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            total=total,
        )


__all__ = ["InvoiceTotals", "LineItem", "TotalsCalculator"]
