"""
Core data types for cross-exchange arbitrage evaluation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional, Tuple

from .constants import DEFAULT_COUNTERPART, Diagnosis, EvaluationMode, Exchange


@dataclass(frozen=True)
class PriceQuote:
    """Point-in-time price of ``asset`` denominated in ``counterpart``."""

    exchange: Exchange
    asset: str
    price: Decimal
    counterpart: str = DEFAULT_COUNTERPART


@dataclass(frozen=True)
class ArbitrageLeg:
    """
    One buy or sell action on one exchange.

    Attributes:
        exchange: Exchange the leg trades on
        asset: Asset symbol (uppercase)
        price: Price of the asset in USDT
        fee_rate: Trading fee in percent units (0.1 means 0.1%)
    """

    exchange: Exchange
    asset: str
    price: Decimal
    fee_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class ArbitrageRoute:
    """
    Ordered legs plus the USDT capital put through them.

    ``conversion_factor`` (units of leg-2 asset per unit of leg-1 asset) and
    ``transfer_fee`` (leg-1 asset units lost in transit) only apply to
    triangulation routes.
    """

    legs: Tuple[ArbitrageLeg, ...]
    initial_capital: Decimal
    mode: EvaluationMode = EvaluationMode.SINGLE_ASSET
    conversion_factor: Optional[Decimal] = None
    transfer_fee: Decimal = Decimal("0")


@dataclass(frozen=True)
class ParityResult:
    """Distance of current prices from the zero-profit line."""

    conversion_factor: Decimal
    equivalent_price_a: Decimal
    delta_relative_percent: Decimal
    break_even_price_b: Decimal


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of running capital through a route.

    Attributes:
        mode: Route shape that was evaluated
        amount_after_leg1: Quantity held after the first leg. In simple-spread
            mode this is the fee-free quantity ``capital / price_a``.
        amount_after_leg2: Quantity held after the second leg. In simple-spread
            mode fees are charged as percentage points on the spread, so this
            is the USDT figure ``capital + profit``, equal to ``final_value``.
        final_value: USDT value at the end of the route
        net_spread_percent: Net percent gain (negative for a loss)
        profit: ``final_value - initial_capital``
        diagnosis: Positive, negative or neutral classification
        parity: Break-even figures (triangulation only)
    """

    mode: EvaluationMode
    amount_after_leg1: Decimal
    amount_after_leg2: Decimal
    final_value: Decimal
    net_spread_percent: Decimal
    profit: Decimal
    diagnosis: Diagnosis
    parity: Optional[ParityResult] = None


@dataclass(frozen=True)
class NetworkSet:
    """Transfer networks an exchange supports for one asset."""

    withdrawal: Tuple[str, ...] = ()
    deposit: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.withdrawal and not self.deposit


@dataclass(frozen=True)
class NetworkCompatibilityResult:
    """Whether funds can move from the source to the destination exchange."""

    is_compatible: bool
    common_networks: Tuple[str, ...] = ()
    reasoning: str = ""


@dataclass(frozen=True)
class AssetCatalogEntry:
    """Known tradable assets for one exchange."""

    exchange: Exchange
    assets: FrozenSet[str] = field(default_factory=frozenset)
