"""
End-to-end evaluation pipeline and the live refresh loop.

One pipeline run: fetch both prices, record the assets in the catalog,
evaluate the route, check transfer networks and, optionally, ask for advisory
commentary. ``LivePoller`` repeats the run on a fixed interval.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional

from .advisory import AdvisoryCommentaryAdapter
from .catalog import AssetCatalog
from .config_loader import AppConfig, get_default_config
from .constants import DEFAULT_COUNTERPART, EvaluationMode, Exchange
from .evaluator import ArbitrageEvaluator
from .exceptions import AdvisoryGenerationError, CrossArbitrageError, ValidationError
from .interfaces import PriceSource
from .models import (
    ArbitrageLeg,
    ArbitrageRoute,
    EvaluationResult,
    NetworkCompatibilityResult,
    PriceQuote,
)
from .networks import NetworkCompatibilityResolver
from .utils import format_spread, normalize_symbol, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineRequest:
    """
    What to evaluate.

    ``asset_b`` defaults to ``asset_a``; ``mode`` defaults to single-asset when
    both assets match and triangulation otherwise. Fees left as None come from
    the configured per-exchange fee table.
    """

    exchange_a: Exchange
    asset_a: str
    exchange_b: Exchange
    initial_capital: Decimal
    asset_b: Optional[str] = None
    fee_a: Optional[Decimal] = None
    fee_b: Optional[Decimal] = None
    mode: Optional[EvaluationMode] = None
    conversion_factor: Optional[Decimal] = None
    transfer_fee: Decimal = Decimal("0")
    counterpart: str = DEFAULT_COUNTERPART
    with_advisory: bool = True

    @property
    def resolved_asset_b(self) -> str:
        return normalize_symbol(self.asset_b or self.asset_a)

    @property
    def resolved_mode(self) -> EvaluationMode:
        if self.mode is not None:
            return self.mode
        if normalize_symbol(self.asset_a) == self.resolved_asset_b:
            return EvaluationMode.SINGLE_ASSET
        return EvaluationMode.TRIANGULATION


@dataclass
class PipelineResult:
    """Everything one run produced"""

    quote_a: PriceQuote
    quote_b: PriceQuote
    legs: List[ArbitrageLeg]
    evaluation: Optional[EvaluationResult]
    network: Optional[NetworkCompatibilityResult]
    advisory: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    completed_at: float = field(default_factory=time.time)


class ArbitragePipeline:
    """Runs one price -> evaluation -> network -> advisory pass"""

    def __init__(
        self,
        price_source: PriceSource,
        resolver: NetworkCompatibilityResolver,
        catalog: Optional[AssetCatalog] = None,
        advisory: Optional[AdvisoryCommentaryAdapter] = None,
        evaluator: Optional[ArbitrageEvaluator] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or get_default_config()
        self.price_source = price_source
        self.resolver = resolver
        self.catalog = catalog
        self.advisory = advisory
        self.evaluator = evaluator or ArbitrageEvaluator(self.config.evaluator.neutral_band_pct)

    def _fee(self, explicit: Optional[Decimal], exchange: Exchange) -> Decimal:
        if explicit is None:
            return self.config.fee_for(exchange)
        return to_decimal(explicit)

    async def run(self, request: PipelineRequest) -> PipelineResult:
        """
        Execute one pass.

        Raises:
            ExchangeError, DataError, TransientServiceError: If a price lookup
                fails; no stale or zero price is substituted
            ValidationError: If the request does not describe a valid route
        """
        exchange_a = Exchange.parse(request.exchange_a)
        exchange_b = Exchange.parse(request.exchange_b)
        asset_a = normalize_symbol(request.asset_a)
        asset_b = request.resolved_asset_b
        if not asset_a:
            raise ValidationError("asset_a is required")

        price_a, price_b = await asyncio.gather(
            self.price_source.get_price(exchange_a, asset_a, request.counterpart),
            self.price_source.get_price(exchange_b, asset_b, request.counterpart),
        )
        quote_a = PriceQuote(exchange_a, asset_a, price_a, request.counterpart)
        quote_b = PriceQuote(exchange_b, asset_b, price_b, request.counterpart)
        warnings: List[str] = []

        if self.catalog is not None:
            for exchange, asset in ((exchange_a, asset_a), (exchange_b, asset_b)):
                try:
                    await self.catalog.add_asset(exchange, asset)
                except CrossArbitrageError as e:
                    logger.warning(f"Could not record {asset} for {exchange.value}: {e}")

        legs = [
            ArbitrageLeg(exchange_a, asset_a, price_a, self._fee(request.fee_a, exchange_a)),
            ArbitrageLeg(exchange_b, asset_b, price_b, self._fee(request.fee_b, exchange_b)),
        ]
        route = ArbitrageRoute(
            legs=tuple(legs),
            initial_capital=to_decimal(request.initial_capital),
            mode=request.resolved_mode,
            conversion_factor=request.conversion_factor,
            transfer_fee=to_decimal(request.transfer_fee),
        )
        evaluation = self.evaluator.evaluate(route)
        if evaluation is None:
            warnings.append("insufficient input: capital, prices and fees must be valid")
        else:
            logger.info(
                f"{asset_a} {exchange_a.value} -> {exchange_b.value}: "
                f"{format_spread(evaluation.net_spread_percent)} ({evaluation.diagnosis.value})"
            )

        network = await self.resolver.resolve(asset_a, exchange_a, exchange_b)

        advisory_text = None
        if self.advisory is not None and request.with_advisory and evaluation is not None:
            try:
                advisory_text = await self.advisory.request_advisory(evaluation, network, legs)
            except AdvisoryGenerationError as e:
                logger.warning(f"Advisory unavailable: {e}")
                warnings.append(str(e))

        return PipelineResult(
            quote_a=quote_a,
            quote_b=quote_b,
            legs=legs,
            evaluation=evaluation,
            network=network,
            advisory=advisory_text,
            warnings=warnings,
        )


class LivePoller:
    """
    Re-runs a pipeline request every ``interval_seconds``.

    Iterations never overlap: a trigger that arrives while one is in flight is
    skipped. A failed iteration disables the poller and keeps the error in
    ``last_error``. ``stop()`` halts scheduling without cancelling an
    iteration that is already running.
    """

    def __init__(
        self,
        pipeline: ArbitragePipeline,
        request: PipelineRequest,
        interval_seconds: Optional[float] = None,
        on_result: Optional[Callable[[PipelineResult], None]] = None,
    ):
        self.pipeline = pipeline
        self.request = request
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else pipeline.config.poll.interval_seconds
        )
        self.on_result = on_result

        self.enabled = False
        self.iterations = 0
        self.skipped = 0
        self.last_result: Optional[PipelineResult] = None
        self.last_error: Optional[BaseException] = None
        self._in_flight = False
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        """Enable the poller and begin the refresh loop"""
        if self._task is not None and not self._task.done():
            # A stopped loop may still be finishing its last iteration
            if not self.enabled:
                self.enabled = True
                self._wakeup.clear()
                logger.info("Live polling resumed")
            return
        self.enabled = True
        self.last_error = None
        self._wakeup.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Live polling started (every {self.interval_seconds:.0f}s)")

    def stop(self) -> None:
        """Stop scheduling new iterations"""
        if self.enabled:
            logger.info("Live polling stopped")
        self.enabled = False
        self._wakeup.set()

    async def wait_closed(self) -> None:
        """Wait for the loop (and any in-flight iteration) to finish"""
        if self._task is not None:
            await self._task

    async def _loop(self) -> None:
        while self.enabled:
            await self.trigger()
            if not self.enabled:
                break
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def trigger(self) -> Optional[PipelineResult]:
        """Run one iteration now unless one is already in flight"""
        if self._in_flight:
            self.skipped += 1
            logger.debug("Refresh skipped: previous iteration still running")
            return None

        self._in_flight = True
        try:
            result = await self.pipeline.run(self.request)
        except Exception as e:
            self.last_error = e
            self.enabled = False
            self._wakeup.set()
            logger.error(f"Live refresh failed, auto-refresh disabled: {e}")
            return None
        finally:
            self._in_flight = False

        self.iterations += 1
        self.last_result = result
        if self.on_result is not None:
            self.on_result(result)
        return result
