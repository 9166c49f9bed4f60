"""Fixed-precision money values stored as integer minor units."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import CurrencyMismatch, InvalidAmount

# Currencies without a minor unit; everything else uses cents.
ZERO_DECIMAL_CURRENCIES = frozenset({"BIF", "CLP", "JPY", "KRW", "PYG", "VND", "XAF", "XOF"})
HUNDRED = Decimal("100")


def minor_unit_exponent(currency: str) -> int:
    return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2


def _coerce_decimal(value: Decimal | int | str | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidAmount("Amount must be numeric")
    try:
        # Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary value.
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"Invalid amount: {value!r}") from exc


@dataclass(frozen=True)
class Money:
    """An amount of one currency, counted in its smallest unit.

    All arithmetic stays on integers. Results that need rounding (only
    ``percent_of``) round half up to the nearest minor unit.
    """

    minor_units: int
    currency: str

    def __post_init__(self) -> None:
        if not isinstance(self.minor_units, int) or isinstance(self.minor_units, bool):
            raise InvalidAmount("Money must be built from an integer number of minor units")
        normalized = (self.currency or "").strip().upper()
        if len(normalized) != 3:
            raise CurrencyMismatch(f"Unknown currency code: {self.currency!r}")
        object.__setattr__(self, "currency", normalized)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(0, currency)

    @classmethod
    def from_minor_units(cls, minor_units: int, currency: str) -> "Money":
        return cls(int(minor_units), currency)

    @classmethod
    def from_major_units(
        cls, value: Decimal | int | str | float, currency: str, *, strict: bool = False
    ) -> "Money":
        """Build a value from a major-unit amount such as ``"120.50"``.

        Extra precision is rounded half up to the minor unit, unless ``strict``
        is set, in which case it is rejected with ``InvalidAmount``.
        """

        amount = _coerce_decimal(value)
        if not amount.is_finite():
            raise InvalidAmount(f"Invalid amount: {value!r}")
        scaled = amount * (Decimal(10) ** minor_unit_exponent(currency))
        minor = scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        if strict and minor != scaled:
            raise InvalidAmount(
                f"Amount {amount} has more precision than {currency} allows"
            )
        return cls(int(minor), currency)

    def to_major_units(self) -> Decimal:
        exponent = minor_unit_exponent(self.currency)
        return Decimal(self.minor_units).scaleb(-exponent).quantize(
            Decimal(1).scaleb(-exponent)
        )

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.minor_units + other.minor_units, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.minor_units - other.minor_units, self.currency)

    def percent_of(self, rate: Decimal | int | str) -> "Money":
        """Return ``rate`` percent of this amount, rounded half up."""

        portion = Decimal(self.minor_units) * _coerce_decimal(rate) / HUNDRED
        return Money(int(portion.quantize(Decimal("1"), rounding=ROUND_HALF_UP)), self.currency)

    def compare(self, other: "Money") -> int:
        self._check_currency(other)
        return (self.minor_units > other.minor_units) - (self.minor_units < other.minor_units)

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def is_positive(self) -> bool:
        return self.minor_units > 0

    __add__ = add
    __sub__ = subtract

    def __lt__(self, other: "Money") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "Money") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "Money") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "Money") -> bool:
        return self.compare(other) >= 0

    def __str__(self) -> str:
        return f"{self.to_major_units():,} {self.currency}"


def sum_money(values, currency: str) -> Money:
    total = Money.zero(currency)
    for value in values:
        total = total.add(value)
    return total


__all__ = ["Money", "minor_unit_exponent", "sum_money"]
