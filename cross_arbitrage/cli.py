"""
Command-line interface.

    cross-arbitrage evaluate --price-a 0.0204 --price-b 0.0211 --capital 1000
    cross-arbitrage quote --asset JASMY --exchange-a MEXC --exchange-b Gate.io
    cross-arbitrage watch --asset JASMY --exchange-a MEXC --exchange-b Bitmart
    cross-arbitrage serve --port 8000
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import logging_config
from .advisory import AdvisoryCommentaryAdapter, HttpAdvisoryGenerator, TemplateAdvisoryGenerator
from .catalog import AssetCatalog
from .config_loader import AppConfig, load_app_config
from .constants import EvaluationMode, Exchange
from .evaluator import ArbitrageEvaluator
from .exceptions import CrossArbitrageError
from .exchanges import RestPriceSource, StaticNetworkSource, build_network_source
from .models import ArbitrageLeg, ArbitrageRoute, EvaluationResult
from .networks import NetworkCompatibilityResolver
from .pipeline import ArbitragePipeline, LivePoller, PipelineRequest, PipelineResult
from .retry import RetryExecutor, exponential_backoff
from .stores import SqliteCatalogStore
from .utils import format_spread, normalize_symbol, to_decimal

logger = logging.getLogger(__name__)

MODES = [mode.value for mode in EvaluationMode]


def _add_route_arguments(parser: argparse.ArgumentParser, with_prices: bool) -> None:
    parser.add_argument("--exchange-a", default="MEXC", help="Exchange to buy on")
    parser.add_argument("--exchange-b", default="Gate.io", help="Exchange to sell on")
    parser.add_argument("--asset", "--asset-a", dest="asset_a", required=True,
                        help="Asset bought on exchange A")
    parser.add_argument("--asset-b", help="Asset valued on exchange B (defaults to --asset)")
    parser.add_argument("--mode", choices=MODES, help="Evaluation mode")
    parser.add_argument("--capital", type=str, help="Initial capital in USDT")
    parser.add_argument("--fee-a", type=str, help="Trading fee on exchange A, in percent")
    parser.add_argument("--fee-b", type=str, help="Trading fee on exchange B, in percent")
    parser.add_argument("--conversion-factor", type=str,
                        help="Units of asset B per unit of asset A (triangulation)")
    parser.add_argument("--transfer-fee", type=str, default="0",
                        help="Fixed transfer fee in asset A units (triangulation)")
    if with_prices:
        parser.add_argument("--price-a", type=str, required=True, help="USDT price on exchange A")
        parser.add_argument("--price-b", type=str, required=True, help="USDT price on exchange B")
    else:
        parser.add_argument("--no-advisory", action="store_true", help="Skip advisory commentary")
        parser.add_argument("--simulated-networks", action="store_true",
                            help="Use the built-in network table instead of live exchange data")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cross-arbitrage",
        description="Evaluate cross-exchange arbitrage opportunities",
    )
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Offline arithmetic with given prices")
    _add_route_arguments(evaluate, with_prices=True)

    quote = subparsers.add_parser("quote", help="Live prices, evaluation, networks, advisory")
    _add_route_arguments(quote, with_prices=False)

    watch = subparsers.add_parser("watch", help="Refresh a quote on an interval")
    _add_route_arguments(watch, with_prices=False)
    watch.add_argument("--interval", type=float, help="Seconds between refreshes")
    watch.add_argument("--iterations", type=int, default=0,
                       help="Stop after this many refreshes (0 runs until interrupted)")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _mode(args) -> Optional[EvaluationMode]:
    return EvaluationMode(args.mode) if args.mode else None


def _optional_decimal(value: Optional[str]):
    return None if value is None else to_decimal(value)


def _capital(args, config: AppConfig):
    if args.capital is None:
        return config.evaluator.default_capital_usdt
    return to_decimal(args.capital)


def format_evaluation(result: Optional[EvaluationResult]) -> List[str]:
    if result is None:
        return ["Evaluation: insufficient input (check prices, capital and fees)"]
    lines = [
        f"Mode:            {result.mode.value}",
        f"After leg 1:     {result.amount_after_leg1:.8f}",
        f"After leg 2:     {result.amount_after_leg2:.8f}",
        f"Final value:     ${result.final_value:,.2f}",
        f"Profit:          ${result.profit:,.2f}",
        f"Net spread:      {format_spread(result.net_spread_percent)} ({result.diagnosis.value})",
    ]
    if result.parity is not None:
        lines.append(
            f"Parity:          equivalent A ${result.parity.equivalent_price_a:.8f}, "
            f"delta {result.parity.delta_relative_percent:+.4f}%, "
            f"break-even B ${result.parity.break_even_price_b:.8f}"
        )
    return lines


def format_result(result: PipelineResult) -> List[str]:
    lines = [
        f"{result.quote_a.asset} on {result.quote_a.exchange.value}: ${result.quote_a.price}",
        f"{result.quote_b.asset} on {result.quote_b.exchange.value}: ${result.quote_b.price}",
    ]
    lines.extend(format_evaluation(result.evaluation))
    if result.network is not None:
        lines.append(f"Networks:        {result.network.reasoning}")
    if result.advisory:
        lines.append("")
        lines.append(result.advisory)
    for warning in result.warnings:
        lines.append(f"Warning: {warning}")
    return lines


def run_evaluate(args, config: AppConfig) -> int:
    exchange_a, exchange_b = Exchange.parse(args.exchange_a), Exchange.parse(args.exchange_b)
    asset_a = normalize_symbol(args.asset_a)
    asset_b = normalize_symbol(args.asset_b or args.asset_a)
    mode = _mode(args) or (
        EvaluationMode.SINGLE_ASSET if asset_a == asset_b else EvaluationMode.TRIANGULATION
    )
    fee_a = _optional_decimal(args.fee_a)
    fee_b = _optional_decimal(args.fee_b)
    route = ArbitrageRoute(
        legs=(
            ArbitrageLeg(exchange_a, asset_a, to_decimal(args.price_a),
                         config.fee_for(exchange_a) if fee_a is None else fee_a),
            ArbitrageLeg(exchange_b, asset_b, to_decimal(args.price_b),
                         config.fee_for(exchange_b) if fee_b is None else fee_b),
        ),
        initial_capital=_capital(args, config),
        mode=mode,
        conversion_factor=_optional_decimal(args.conversion_factor),
        transfer_fee=to_decimal(args.transfer_fee),
    )
    result = ArbitrageEvaluator(config.evaluator.neutral_band_pct).evaluate(route)
    print("\n".join(format_evaluation(result)))
    return 0 if result is not None else 2


def build_pipeline(config: AppConfig, simulated_networks: bool = False):
    """Wire a live pipeline; returns it with the resources to close afterwards."""
    retry = RetryExecutor(
        max_attempts=config.retry.max_attempts,
        backoff=exponential_backoff(config.retry.base_delay_seconds),
    )
    price_source = RestPriceSource(timeout_seconds=config.http.timeout_seconds)
    network_source = (
        StaticNetworkSource()
        if simulated_networks
        else build_network_source(config.http.timeout_seconds)
    )
    store = SqliteCatalogStore(config.catalog.db_path)
    resources = [price_source, store]
    if hasattr(network_source, "close"):
        resources.append(network_source)

    advisory = None
    if config.advisory.enabled:
        if config.advisory.endpoint_url:
            generator = HttpAdvisoryGenerator(
                config.advisory.endpoint_url, timeout_seconds=config.advisory.timeout_seconds
            )
            resources.append(generator)
        else:
            generator = TemplateAdvisoryGenerator(config.advisory.min_spread_pct)
        advisory = AdvisoryCommentaryAdapter(
            generator, retry=retry, max_attempts=config.retry.max_attempts
        )

    pipeline = ArbitragePipeline(
        price_source=price_source,
        resolver=NetworkCompatibilityResolver(network_source, retry=retry),
        catalog=AssetCatalog(store, config.catalog),
        advisory=advisory,
        config=config,
    )
    return pipeline, resources


def _request_from_args(args, config: AppConfig) -> PipelineRequest:
    return PipelineRequest(
        exchange_a=Exchange.parse(args.exchange_a),
        asset_a=args.asset_a,
        exchange_b=Exchange.parse(args.exchange_b),
        asset_b=args.asset_b,
        initial_capital=_capital(args, config),
        fee_a=_optional_decimal(args.fee_a),
        fee_b=_optional_decimal(args.fee_b),
        mode=_mode(args),
        conversion_factor=_optional_decimal(args.conversion_factor),
        transfer_fee=to_decimal(args.transfer_fee),
        with_advisory=not args.no_advisory,
    )


async def _close_all(resources) -> None:
    for resource in resources:
        try:
            await resource.close()
        except Exception as e:
            logger.warning(f"Failed to close {type(resource).__name__}: {e}")


async def run_quote(args, config: AppConfig) -> int:
    pipeline, resources = build_pipeline(config, args.simulated_networks)
    try:
        result = await pipeline.run(_request_from_args(args, config))
        print("\n".join(format_result(result)))
        return 0
    except CrossArbitrageError as e:
        logger.error(f"Quote failed: {e}")
        return 1
    finally:
        if pipeline.catalog is not None:
            await pipeline.catalog.drain()
        await _close_all(resources)


async def run_watch(args, config: AppConfig) -> int:
    pipeline, resources = build_pipeline(config, args.simulated_networks)

    def on_result(result: PipelineResult) -> None:
        print("\n".join(format_result(result)))
        print("-" * 60)
        if args.iterations and poller.iterations >= args.iterations:
            poller.stop()

    poller = LivePoller(
        pipeline, _request_from_args(args, config),
        interval_seconds=args.interval, on_result=on_result,
    )
    try:
        poller.start()
        await poller.wait_closed()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Stopped by user")
        poller.stop()
    finally:
        if pipeline.catalog is not None:
            await pipeline.catalog.drain()
        await _close_all(resources)

    if poller.last_error is not None:
        logger.error(f"Watch stopped after an error: {poller.last_error}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging_config.setup(getattr(logging, args.log_level))

    try:
        config = load_app_config(args.config, use_dotenv=True)
    except CrossArbitrageError as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    try:
        if args.command == "evaluate":
            return run_evaluate(args, config)
        if args.command == "quote":
            return asyncio.run(run_quote(args, config))
        if args.command == "watch":
            return asyncio.run(run_watch(args, config))
        if args.command == "serve":
            from .web_server import main as serve

            serve(host=args.host, port=args.port, config=config)
            return 0
    except CrossArbitrageError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
