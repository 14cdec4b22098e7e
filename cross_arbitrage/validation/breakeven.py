"""
Break-even and parity math for two-asset routes.

Shows how far current prices sit from the zero-profit line:

1. ``conversion_factor`` is units of asset B received per unit of asset A
   (defaults to the implicit USDT bridge ``priceA / priceB``)
2. ``equivalent_price_a = priceB * factor`` is what one A is worth once
   carried through the route
3. ``delta_relative_percent`` compares that equivalent with the direct price
4. ``break_even_price_b = priceA / factor`` is the B price at which the route
   neither gains nor loses before fees
"""

from decimal import Decimal
from typing import Optional

from ..exceptions import ValidationError
from ..models import ParityResult
from ..utils import is_positive_decimal, to_decimal


def implicit_conversion_factor(price_a: Decimal, price_b: Decimal) -> Decimal:
    """Units of B per unit of A when both legs are bridged through USDT."""
    price_a, price_b = to_decimal(price_a), to_decimal(price_b)
    if not (is_positive_decimal(price_a) and is_positive_decimal(price_b)):
        raise ValidationError(
            f"Prices must be positive to derive a conversion factor: {price_a}, {price_b}"
        )
    return price_a / price_b


def compute_parity(
    price_a: Decimal, price_b: Decimal, conversion_factor: Optional[Decimal] = None
) -> ParityResult:
    """
    Compute parity figures for a two-asset route.

    Args:
        price_a: USDT price of asset A
        price_b: USDT price of asset B
        conversion_factor: Units of B per unit of A; implicit bridge if None

    Returns:
        ParityResult with equivalent price, relative delta and break-even price

    Raises:
        ValidationError: If any input is not strictly positive
    """
    price_a, price_b = to_decimal(price_a), to_decimal(price_b)
    factor = (
        implicit_conversion_factor(price_a, price_b)
        if conversion_factor is None
        else to_decimal(conversion_factor)
    )
    if not is_positive_decimal(factor):
        raise ValidationError(f"Conversion factor must be positive, got {factor}")

    equivalent_price_a = price_b * factor
    return ParityResult(
        conversion_factor=factor,
        equivalent_price_a=equivalent_price_a,
        delta_relative_percent=(equivalent_price_a - price_a) / price_a * 100,
        break_even_price_b=price_a / factor,
    )


def describe_parity(parity: ParityResult) -> str:
    """Return exactly one audit line for a parity computation."""
    return (
        f"PARITY factor={parity.conversion_factor:.8g} "
        f"equivalent_a={parity.equivalent_price_a:.8g} "
        f"delta={parity.delta_relative_percent:.4f}% "
        f"break_even_b={parity.break_even_price_b:.8g}"
    )
