"""
Profit and spread arithmetic for cross-exchange arbitrage routes.

The evaluator is a pure function of its inputs: no I/O, Decimal arithmetic,
and the same route always yields the same result. Insufficient input (a
non-positive price, capital or an out-of-range fee) returns ``None`` so
callers can render an empty state; a route whose shape does not match its
mode raises ``ValidationError``.

Supported modes:

1. SINGLE_ASSET: buy asset on exchange A, sell the same asset on exchange B
2. TRIANGULATION: buy asset A on exchange A, convert into asset B, value B
   in USDT on exchange B
3. SIMPLE_SPREAD: quoted price spread minus fees, without compounding fees
   into the traded quantity
"""

import logging
from decimal import Decimal
from typing import Optional, Sequence

from .constants import DEFAULT_NEUTRAL_BAND_PCT, Diagnosis, EvaluationMode
from .exceptions import ValidationError
from .models import ArbitrageLeg, ArbitrageRoute, EvaluationResult
from .utils import is_positive_decimal, is_valid_fee_rate, symbols_equal, to_decimal
from .validation.breakeven import compute_parity, describe_parity

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
ONE = Decimal("1")
ZERO = Decimal("0")


def _fee_multiplier(fee_rate: Decimal) -> Decimal:
    return ONE - fee_rate / HUNDRED


class ArbitrageEvaluator:
    """Computes the net outcome of an arbitrage route after fees."""

    def __init__(self, neutral_band_pct: Decimal = Decimal(DEFAULT_NEUTRAL_BAND_PCT)):
        """
        Initialize evaluator.

        Args:
            neutral_band_pct: Spreads within +/- this many percentage points
                are classified NEUTRAL so float-sized noise is not a signal
        """
        band = to_decimal(neutral_band_pct)
        if not band.is_finite() or band < 0:
            raise ValidationError(f"neutral_band_pct must be >= 0, got {neutral_band_pct}")
        self.neutral_band_pct = band

    def classify(self, net_spread_percent: Decimal) -> Diagnosis:
        """Map a net spread to a diagnosis using the neutral dead zone."""
        if net_spread_percent > self.neutral_band_pct:
            return Diagnosis.POSITIVE
        if net_spread_percent < -self.neutral_band_pct:
            return Diagnosis.NEGATIVE
        return Diagnosis.NEUTRAL

    def evaluate(self, route: ArbitrageRoute) -> Optional[EvaluationResult]:
        """
        Evaluate a route.

        Returns:
            EvaluationResult, or None when inputs are insufficient

        Raises:
            ValidationError: If the legs do not fit the route mode
        """
        self._check_shape(route)

        capital = to_decimal(route.initial_capital)
        legs = [
            ArbitrageLeg(
                exchange=leg.exchange,
                asset=leg.asset,
                price=to_decimal(leg.price),
                fee_rate=to_decimal(leg.fee_rate),
            )
            for leg in route.legs
        ]
        if not self._inputs_usable(capital, legs):
            logger.debug("Route skipped: insufficient input (non-positive price or capital)")
            return None

        if route.mode is EvaluationMode.SINGLE_ASSET:
            return self._single_asset(capital, legs[0], legs[1])
        if route.mode is EvaluationMode.TRIANGULATION:
            factor = None
            if route.conversion_factor is not None:
                factor = to_decimal(route.conversion_factor)
                if not is_positive_decimal(factor):
                    logger.debug(f"Route skipped: conversion factor {factor} is not positive")
                    return None
            transfer_fee = to_decimal(route.transfer_fee)
            if not transfer_fee.is_finite() or transfer_fee < 0:
                logger.debug(f"Route skipped: transfer fee {transfer_fee} is invalid")
                return None
            return self._triangulation(capital, legs[0], legs[1], factor, transfer_fee)
        return self._simple_spread(capital, legs[0], legs[1])

    def _check_shape(self, route: ArbitrageRoute) -> None:
        if not isinstance(route.mode, EvaluationMode):
            raise ValidationError(f"Unknown evaluation mode: {route.mode!r}")
        if len(route.legs) != 2:
            raise ValidationError(
                f"{route.mode.value} routes need exactly 2 legs, got {len(route.legs)}"
            )
        if route.mode is EvaluationMode.SINGLE_ASSET and not symbols_equal(
            route.legs[0].asset, route.legs[1].asset
        ):
            raise ValidationError(
                f"single_asset routes trade one asset, got "
                f"{route.legs[0].asset} and {route.legs[1].asset}"
            )

    @staticmethod
    def _inputs_usable(capital: Decimal, legs: Sequence[ArbitrageLeg]) -> bool:
        if not is_positive_decimal(capital):
            return False
        return all(
            is_positive_decimal(leg.price) and is_valid_fee_rate(leg.fee_rate)
            for leg in legs
        )

    def _result(self, mode, capital, leg1_amount, leg2_amount, final_value, parity=None):
        spread = (final_value / capital - ONE) * HUNDRED
        return EvaluationResult(
            mode=mode,
            amount_after_leg1=leg1_amount,
            amount_after_leg2=leg2_amount,
            final_value=final_value,
            net_spread_percent=spread,
            profit=final_value - capital,
            diagnosis=self.classify(spread),
            parity=parity,
        )

    def _single_asset(
        self, capital: Decimal, buy: ArbitrageLeg, sell: ArbitrageLeg
    ) -> EvaluationResult:
        amount_bought = capital / buy.price * _fee_multiplier(buy.fee_rate)
        final_value = amount_bought * sell.price * _fee_multiplier(sell.fee_rate)
        return self._result(
            EvaluationMode.SINGLE_ASSET, capital, amount_bought, final_value, final_value
        )

    def _triangulation(
        self,
        capital: Decimal,
        leg_a: ArbitrageLeg,
        leg_b: ArbitrageLeg,
        conversion_factor: Optional[Decimal],
        transfer_fee: Decimal,
    ) -> EvaluationResult:
        # factor = units of B per unit of A; the implicit USDT bridge is pA / pB,
        # which makes amount_b == (amount_a * pA) / pB * (1 - feeB)
        parity = compute_parity(leg_a.price, leg_b.price, conversion_factor)
        logger.debug(describe_parity(parity))

        amount_a = capital / leg_a.price * _fee_multiplier(leg_a.fee_rate) - transfer_fee
        if amount_a <= 0:
            # Fixed transfer fee consumed the whole position
            return self._result(
                EvaluationMode.TRIANGULATION, capital, max(amount_a, ZERO), ZERO, ZERO, parity
            )

        amount_b = amount_a * parity.conversion_factor * _fee_multiplier(leg_b.fee_rate)
        final_value = amount_b * leg_b.price
        return self._result(
            EvaluationMode.TRIANGULATION, capital, amount_a, amount_b, final_value, parity
        )

    def _simple_spread(
        self, capital: Decimal, buy: ArbitrageLeg, sell: ArbitrageLeg
    ) -> EvaluationResult:
        gross_pct = (sell.price - buy.price) / buy.price * HUNDRED
        net_pct = gross_pct - (buy.fee_rate + sell.fee_rate)
        profit = capital * net_pct / HUNDRED
        return EvaluationResult(
            mode=EvaluationMode.SIMPLE_SPREAD,
            amount_after_leg1=capital / buy.price,
            amount_after_leg2=capital + profit,
            final_value=capital + profit,
            net_spread_percent=net_pct,
            profit=profit,
            diagnosis=self.classify(net_pct),
        )


def evaluate(
    route: ArbitrageRoute, neutral_band_pct: Decimal = Decimal(DEFAULT_NEUTRAL_BAND_PCT)
) -> Optional[EvaluationResult]:
    """Evaluate a route with a throwaway evaluator."""
    return ArbitrageEvaluator(neutral_band_pct).evaluate(route)
