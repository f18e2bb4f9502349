"""Tests for cent conversions."""

from decimal import Decimal

from marketplace.utils.money import as_float, from_cents, to_cents, to_money


def test_to_money_rounds_half_up():
    assert to_money("0.125") == Decimal("0.13")
    assert to_money(2.675) == Decimal("2.68")


def test_float_noise_is_rounded_away():
    assert to_cents(19.99 + 5.00 + 1.61) == 2660
    assert to_cents(0.1 + 0.2) == 30


def test_cents_round_trip_to_two_places():
    assert from_cents(2660) == Decimal("26.60")
    assert str(from_cents(5)) == "0.05"


def test_none_passes_through():
    assert to_cents(None) is None
    assert from_cents(None) is None
    assert as_float(None) is None
