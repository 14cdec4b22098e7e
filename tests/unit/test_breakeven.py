"""Tests for parity and break-even math."""

from decimal import Decimal

import pytest
from cross_arbitrage.exceptions import ValidationError
from cross_arbitrage.validation import compute_parity, describe_parity, implicit_conversion_factor


def test_implicit_factor_is_price_ratio():
    assert implicit_conversion_factor(Decimal("0.00001"), Decimal("0.02")) == Decimal("0.0005")


def test_implicit_factor_rejects_zero():
    with pytest.raises(ValidationError):
        implicit_conversion_factor(Decimal("0"), Decimal("1"))


def test_parity_at_implicit_bridge_is_zero():
    parity = compute_parity(Decimal("2"), Decimal("4"))
    assert parity.conversion_factor == Decimal("0.5")
    assert parity.equivalent_price_a == Decimal("2")
    assert parity.delta_relative_percent == 0
    assert parity.break_even_price_b == Decimal("4")


def test_parity_with_user_factor():
    """VAULTA/XPR style: factor converts one asset into the other."""
    parity = compute_parity(Decimal("0.004"), Decimal("0.5"), conversion_factor=Decimal("0.0082"))
    assert parity.equivalent_price_a == Decimal("0.0041")
    assert float(parity.delta_relative_percent) == pytest.approx(2.5)
    assert float(parity.break_even_price_b) == pytest.approx(0.487804878)


def test_parity_rejects_bad_factor():
    with pytest.raises(ValidationError):
        compute_parity(Decimal("1"), Decimal("1"), conversion_factor=Decimal("-2"))


def test_describe_parity_single_line():
    line = describe_parity(compute_parity(Decimal("2"), Decimal("4")))
    assert line.startswith("PARITY ")
    assert "\n" not in line
    assert "delta=0.0000%" in line
