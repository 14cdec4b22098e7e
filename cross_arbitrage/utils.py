"""
Common utilities and helper functions for the arbitrage evaluator.

This module provides centralized helpers for symbol normalization, decimal
coercion and percentage formatting.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Union


# Symbol utilities
def normalize_symbol(value: str) -> str:
    """Uppercase and trim an asset symbol."""
    if value is None:
        return ""
    return str(value).strip().upper()


def symbols_equal(a: str, b: str) -> bool:
    """Case-insensitive symbol comparison."""
    return normalize_symbol(a) == normalize_symbol(b)


# Decimal utilities
def to_decimal(value: Any) -> Decimal:
    """
    Coerce a number or numeric string to Decimal.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary expansion.
    Unparseable input yields ``Decimal("NaN")`` so callers can reject it with
    a single ``is_finite`` check.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        return Decimal("NaN")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("NaN")


def is_positive_decimal(value: Decimal) -> bool:
    """True for finite values strictly greater than zero."""
    return value.is_finite() and value > 0


def is_valid_fee_rate(value: Decimal) -> bool:
    """Check if a fee is a valid percentage in [0, 100)."""
    return value.is_finite() and Decimal("0") <= value < Decimal("100")


def format_spread(spread_pct: Union[Decimal, float]) -> str:
    """Format a percent spread with a sign prefix.

    Examples:
        >>> format_spread(Decimal("2.8648"))
        '+2.86%'
        >>> format_spread(-0.5)
        '-0.50%'
    """
    value = float(spread_pct)
    if value >= 0:
        return f"+{value:.2f}%"
    return f"{value:.2f}%"

