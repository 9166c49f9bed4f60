from __future__ import annotations

from decimal import Decimal

import pytest

from billing_backend.app.exceptions import CurrencyMismatch, InvalidAmount
from billing_backend.app.money import Money, sum_money


def test_from_major_units_rounds_half_up_to_cents():
    assert Money.from_major_units("12.345", "USD").minor_units == 1235
    assert Money.from_major_units("12.344", "USD").minor_units == 1234
    assert Money.from_major_units(Decimal("0.005"), "usd").minor_units == 1


def test_strict_conversion_rejects_sub_cent_precision():
    with pytest.raises(InvalidAmount):
        Money.from_major_units("10.001", "USD", strict=True)

    assert Money.from_major_units("10.10", "USD", strict=True).minor_units == 1010


def test_zero_decimal_currency_uses_whole_units():
    amount = Money.from_major_units("1500", "JPY")

    assert amount.minor_units == 1500
    assert amount.to_major_units() == Decimal("1500")


def test_to_major_units_keeps_two_decimals():
    assert Money(16329, "USD").to_major_units() == Decimal("163.29")
    assert str(Money(100, "USD").to_major_units()) == "1.00"


def test_percent_of_rounds_half_up():
    subtotal = Money(15050, "USD")

    assert subtotal.percent_of(Decimal("8.5")).minor_units == 1279
    assert Money(1, "USD").percent_of(50).minor_units == 1
    assert Money(3, "USD").percent_of(Decimal("16.666")).minor_units == 0


def test_arithmetic_across_currencies_is_rejected():
    with pytest.raises(CurrencyMismatch):
        Money(100, "USD").add(Money(100, "EUR"))
    with pytest.raises(CurrencyMismatch):
        Money(100, "USD") > Money(50, "MXN")


def test_comparisons_and_sums():
    values = [Money(100, "USD"), Money(250, "USD"), Money(5, "USD")]

    assert sum_money(values, "USD") == Money(355, "USD")
    assert Money(100, "USD") < Money(101, "USD")
    assert Money(0, "USD").is_zero()
    assert not Money(-1, "USD").is_positive()


@pytest.mark.parametrize("value", ["abc", "", "NaN", True])
def test_invalid_amounts_are_rejected(value):
    with pytest.raises(InvalidAmount):
        Money.from_major_units(value, "USD")


def test_money_requires_integer_minor_units_and_iso_currency():
    with pytest.raises(InvalidAmount):
        Money(10.5, "USD")  # type: ignore[arg-type]
    with pytest.raises(CurrencyMismatch):
        Money(10, "US")
