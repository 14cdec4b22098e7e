"""Tests for the evaluation pipeline and the live poller."""

import asyncio
from decimal import Decimal

import pytest
from cross_arbitrage.advisory import AdvisoryCommentaryAdapter, TemplateAdvisoryGenerator
from cross_arbitrage.catalog import AssetCatalog
from cross_arbitrage.config_loader import AppConfig, CatalogConfig
from cross_arbitrage.constants import Diagnosis, EvaluationMode, Exchange
from cross_arbitrage.exceptions import ExchangeError, TransientServiceError
from cross_arbitrage.exchanges import StaticNetworkSource, StaticPriceSource
from cross_arbitrage.networks import NetworkCompatibilityResolver
from cross_arbitrage.pipeline import ArbitragePipeline, LivePoller, PipelineRequest
from cross_arbitrage.retry import RetryExecutor
from cross_arbitrage.stores import InMemoryCatalogStore


async def no_sleep(delay):
    return None


class FailingGenerator:
    async def generate(self, context):
        raise TransientServiceError("advisor busy")


def make_pipeline(prices=None, generator=None, store=None, config=None):
    prices = prices or StaticPriceSource({
        (Exchange.MEXC, "JASMY"): "0.0315",
        (Exchange.BITMART, "JASMY"): "0.0325",
        (Exchange.MEXC, "PEPE"): "0.00001",
        (Exchange.GATEIO, "JASMY"): "0.02",
    })
    retry = RetryExecutor(3, sleep=no_sleep)
    config = config or AppConfig(
        catalog=CatalogConfig(db_path=":memory:", fallback_assets={}),
        fees={Exchange.MEXC: Decimal("0.1"), Exchange.BITMART: Decimal("0.2")},
    )
    return ArbitragePipeline(
        price_source=prices,
        resolver=NetworkCompatibilityResolver(StaticNetworkSource(), retry=retry),
        catalog=AssetCatalog(store or InMemoryCatalogStore(), config.catalog),
        advisory=AdvisoryCommentaryAdapter(generator or TemplateAdvisoryGenerator(), retry=retry),
        config=config,
    )


def jasmy_request(**kwargs):
    params = dict(
        exchange_a=Exchange.MEXC,
        asset_a="jasmy",
        exchange_b=Exchange.BITMART,
        initial_capital=Decimal("1000"),
    )
    params.update(kwargs)
    return PipelineRequest(**params)


class TestArbitragePipeline:
    @pytest.mark.asyncio
    async def test_full_run(self):
        store = InMemoryCatalogStore()
        result = await make_pipeline(store=store).run(jasmy_request())

        assert result.quote_a.price == Decimal("0.0315")
        assert result.quote_b.price == Decimal("0.0325")
        assert result.legs[0].fee_rate == Decimal("0.1")
        assert result.legs[1].fee_rate == Decimal("0.2")
        assert result.evaluation.mode is EvaluationMode.SINGLE_ASSET
        assert float(result.evaluation.final_value) == pytest.approx(1028.6529, rel=1e-6)
        assert result.evaluation.diagnosis is Diagnosis.POSITIVE
        assert result.network.common_networks == ("ERC20",)
        assert result.advisory.startswith("Recommendation: Viable.")
        assert result.warnings == []
        assert await store.get(Exchange.MEXC) == ["JASMY"]
        assert await store.get(Exchange.BITMART) == ["JASMY"]

    @pytest.mark.asyncio
    async def test_explicit_fees_override_config(self):
        result = await make_pipeline().run(
            jasmy_request(fee_a=Decimal("0"), fee_b=Decimal("0"))
        )
        assert result.legs[0].fee_rate == 0
        assert result.legs[1].fee_rate == 0

    @pytest.mark.asyncio
    async def test_different_assets_default_to_triangulation(self):
        result = await make_pipeline().run(
            jasmy_request(asset_a="PEPE", asset_b="JASMY", exchange_b=Exchange.GATEIO)
        )
        assert result.evaluation.mode is EvaluationMode.TRIANGULATION
        assert result.evaluation.parity is not None

    @pytest.mark.asyncio
    async def test_price_failure_aborts(self):
        prices = StaticPriceSource({(Exchange.MEXC, "JASMY"): "0.0315"})
        with pytest.raises(ExchangeError):
            await make_pipeline(prices=prices).run(jasmy_request())

    @pytest.mark.asyncio
    async def test_advisory_failure_becomes_warning(self):
        result = await make_pipeline(generator=FailingGenerator()).run(jasmy_request())

        assert result.evaluation is not None
        assert result.advisory is None
        assert result.warnings == ["advisory generation failed after 3 attempts"]

    @pytest.mark.asyncio
    async def test_advisory_can_be_skipped(self):
        result = await make_pipeline().run(jasmy_request(with_advisory=False))
        assert result.advisory is None

    @pytest.mark.asyncio
    async def test_insufficient_input_warns(self):
        result = await make_pipeline().run(jasmy_request(initial_capital=Decimal("0")))
        assert result.evaluation is None
        assert result.advisory is None
        assert result.warnings


class BlockingPipeline:
    """Pipeline stand-in whose runs wait on an event"""

    def __init__(self, config):
        self.config = config
        self.release = asyncio.Event()
        self.runs = 0
        self.fail_with = None

    async def run(self, request):
        self.runs += 1
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return f"result-{self.runs}"


class TestLivePoller:
    @pytest.mark.asyncio
    async def test_default_interval_from_config(self):
        poller = LivePoller(make_pipeline(), jasmy_request())
        assert poller.interval_seconds == 15.0

    @pytest.mark.asyncio
    async def test_trigger_runs_pipeline(self):
        results = []
        poller = LivePoller(make_pipeline(), jasmy_request(), on_result=results.append)

        result = await poller.trigger()

        assert result.evaluation is not None
        assert results == [result]
        assert poller.iterations == 1
        assert poller.last_result is result

    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_skipped(self):
        pipeline = BlockingPipeline(AppConfig())
        poller = LivePoller(pipeline, jasmy_request())

        first = asyncio.create_task(poller.trigger())
        await asyncio.sleep(0)
        assert poller.in_flight

        assert await poller.trigger() is None
        assert poller.skipped == 1

        pipeline.release.set()
        assert await first == "result-1"
        assert pipeline.runs == 1
        assert not poller.in_flight

    @pytest.mark.asyncio
    async def test_failure_disables_poller(self):
        pipeline = BlockingPipeline(AppConfig())
        pipeline.fail_with = ExchangeError("MEXC down", exchange="MEXC")
        pipeline.release.set()
        poller = LivePoller(pipeline, jasmy_request(), interval_seconds=0.01)

        poller.start()
        await asyncio.wait_for(poller.wait_closed(), timeout=1)

        assert poller.enabled is False
        assert isinstance(poller.last_error, ExchangeError)
        assert pipeline.runs == 1

    @pytest.mark.asyncio
    async def test_loop_repeats_until_stopped(self):
        pipeline = make_pipeline()
        seen = []

        def on_result(result):
            seen.append(result)
            if len(seen) == 3:
                poller.stop()

        poller = LivePoller(pipeline, jasmy_request(), interval_seconds=0.01, on_result=on_result)
        poller.start()
        await asyncio.wait_for(poller.wait_closed(), timeout=2)

        assert len(seen) == 3
        assert poller.last_error is None

    @pytest.mark.asyncio
    async def test_stop_does_not_cancel_in_flight(self):
        pipeline = BlockingPipeline(AppConfig())
        poller = LivePoller(pipeline, jasmy_request(), interval_seconds=0.01)

        poller.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert poller.in_flight

        poller.stop()
        pipeline.release.set()
        await asyncio.wait_for(poller.wait_closed(), timeout=1)

        assert poller.iterations == 1
        assert poller.last_result == "result-1"
        assert pipeline.runs == 1

    @pytest.mark.asyncio
    async def test_restart_during_in_flight_iteration_keeps_polling(self):
        pipeline = BlockingPipeline(AppConfig())
        poller = LivePoller(pipeline, jasmy_request(), interval_seconds=0.01)

        poller.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert poller.in_flight

        poller.stop()
        poller.start()
        pipeline.release.set()
        await asyncio.sleep(0.05)

        assert poller.enabled
        assert not poller._task.done()
        assert pipeline.runs > 1

        poller.stop()
        await asyncio.wait_for(poller.wait_closed(), timeout=1)
