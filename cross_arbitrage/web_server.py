"""
FastAPI server exposing the arbitrage evaluator over HTTP.

Thin JSON wrappers around the catalog, price sources, network resolver,
evaluator and advisory adapter. Unknown exchanges and invalid input map to
400, unknown trading pairs to 404 and upstream exchange failures to 502.
"""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .advisory import (
    AdvisoryCommentaryAdapter,
    HttpAdvisoryGenerator,
    TemplateAdvisoryGenerator,
)
from .catalog import AssetCatalog
from .config_loader import AppConfig, get_default_config
from .constants import DEFAULT_COUNTERPART, EvaluationMode, Exchange
from .evaluator import ArbitrageEvaluator
from .exceptions import (
    AdvisoryGenerationError,
    CrossArbitrageError,
    DataError,
    ExchangeError,
    NetworkError,
    UnknownExchangeError,
    UnknownPairError,
    ValidationError,
)
from .exchanges import RestPriceSource, build_network_source
from .interfaces import PriceSource
from .models import (
    ArbitrageLeg,
    ArbitrageRoute,
    EvaluationResult,
    NetworkCompatibilityResult,
)
from .networks import NetworkCompatibilityResolver
from .pair_formatter import format_pair
from .retry import RetryExecutor, exponential_backoff
from .stores import SqliteCatalogStore
from .utils import format_spread, normalize_symbol, to_decimal
from .version import __version__

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Collaborators the HTTP handlers depend on"""

    config: AppConfig
    price_source: PriceSource
    catalog: AssetCatalog
    resolver: NetworkCompatibilityResolver
    evaluator: ArbitrageEvaluator
    advisory: Optional[AdvisoryCommentaryAdapter] = None


def build_services(config: Optional[AppConfig] = None) -> Services:
    """Wire live collaborators from configuration."""
    config = config or get_default_config()
    retry = RetryExecutor(
        max_attempts=config.retry.max_attempts,
        backoff=exponential_backoff(config.retry.base_delay_seconds),
    )

    advisory = None
    if config.advisory.enabled:
        if config.advisory.endpoint_url:
            generator = HttpAdvisoryGenerator(
                config.advisory.endpoint_url, timeout_seconds=config.advisory.timeout_seconds
            )
        else:
            generator = TemplateAdvisoryGenerator(config.advisory.min_spread_pct)
        advisory = AdvisoryCommentaryAdapter(
            generator, retry=retry, max_attempts=config.retry.max_attempts
        )

    return Services(
        config=config,
        price_source=RestPriceSource(timeout_seconds=config.http.timeout_seconds),
        catalog=AssetCatalog(SqliteCatalogStore(config.catalog.db_path), config.catalog),
        resolver=NetworkCompatibilityResolver(
            build_network_source(config.http.timeout_seconds), retry=retry
        ),
        evaluator=ArbitrageEvaluator(config.evaluator.neutral_band_pct),
        advisory=advisory,
    )


# Request models
class MarketPriceRequest(BaseModel):
    exchange: str
    asset: str = Field(min_length=1)
    counterpart: str = DEFAULT_COUNTERPART


class ExchangeRequest(BaseModel):
    exchange: str


class AssetRequest(BaseModel):
    exchange: str
    asset: str = Field(min_length=1)


class NetworkAnalysisRequest(BaseModel):
    asset: str = Field(min_length=1)
    exchange_a: str
    exchange_b: str


class LegPayload(BaseModel):
    exchange: str
    asset: str = Field(min_length=1)
    price: float
    fee_rate: float = 0.0


class EvaluateRequest(BaseModel):
    mode: EvaluationMode = EvaluationMode.SINGLE_ASSET
    legs: List[LegPayload]
    initial_capital: float
    conversion_factor: Optional[float] = None
    transfer_fee: float = 0.0


class NetworkPayload(BaseModel):
    is_compatible: bool
    common_networks: List[str] = Field(default_factory=list)
    reasoning: str = ""


class InvestmentAnalysisRequest(EvaluateRequest):
    network: Optional[NetworkPayload] = None


# Serialization helpers
def _num(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def evaluation_to_dict(result: Optional[EvaluationResult]) -> Optional[Dict[str, Any]]:
    if result is None:
        return None
    data = {
        "mode": result.mode.value,
        "amount_after_leg1": _num(result.amount_after_leg1),
        "amount_after_leg2": _num(result.amount_after_leg2),
        "final_value": _num(result.final_value),
        "net_spread_percent": _num(result.net_spread_percent),
        "net_spread": format_spread(result.net_spread_percent),
        "profit": _num(result.profit),
        "diagnosis": result.diagnosis.value,
        "parity": None,
    }
    if result.parity is not None:
        data["parity"] = {
            "conversion_factor": _num(result.parity.conversion_factor),
            "equivalent_price_a": _num(result.parity.equivalent_price_a),
            "delta_relative_percent": _num(result.parity.delta_relative_percent),
            "break_even_price_b": _num(result.parity.break_even_price_b),
        }
    return data


def network_to_dict(result: NetworkCompatibilityResult) -> Dict[str, Any]:
    return {
        "is_compatible": result.is_compatible,
        "common_networks": list(result.common_networks),
        "reasoning": result.reasoning,
    }


def _route_from_request(request: EvaluateRequest) -> ArbitrageRoute:
    legs = tuple(
        ArbitrageLeg(
            exchange=Exchange.parse(leg.exchange),
            asset=normalize_symbol(leg.asset),
            price=to_decimal(leg.price),
            fee_rate=to_decimal(leg.fee_rate),
        )
        for leg in request.legs
    )
    return ArbitrageRoute(
        legs=legs,
        initial_capital=to_decimal(request.initial_capital),
        mode=request.mode,
        conversion_factor=(
            None if request.conversion_factor is None else to_decimal(request.conversion_factor)
        ),
        transfer_fee=to_decimal(request.transfer_fee),
    )


def _status_for(error: CrossArbitrageError) -> int:
    if isinstance(error, UnknownPairError):
        return 404
    if isinstance(error, (UnknownExchangeError, ValidationError)):
        return 400
    if isinstance(error, (ExchangeError, DataError, NetworkError, AdvisoryGenerationError)):
        return 502
    return 500


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Injected collaborators; live ones are built from the
            default configuration when omitted
    """
    services = services or build_services()
    app = FastAPI(title="Cross-Exchange Arbitrage Evaluator", version=__version__)
    app.state.services = services

    @app.exception_handler(CrossArbitrageError)
    async def handle_domain_error(request: Request, exc: CrossArbitrageError):
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.url.path} rejected: {exc}")
        return JSONResponse(
            status_code=status,
            content={"error": str(exc), "type": type(exc).__name__},
        )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": __version__}

    @app.post("/api/get-market-price")
    async def get_market_price(body: MarketPriceRequest):
        exchange = Exchange.parse(body.exchange)
        price = await services.price_source.get_price(exchange, body.asset, body.counterpart)
        return {
            "exchange": exchange.value,
            "asset": normalize_symbol(body.asset),
            "pair": format_pair(exchange, body.asset, body.counterpart),
            "price": float(price),
        }

    @app.post("/api/get-exchange-assets")
    async def get_exchange_assets(body: ExchangeRequest):
        exchange = Exchange.parse(body.exchange)
        assets = await services.catalog.get_assets(exchange)
        return {"exchange": exchange.value, "assets": sorted(assets)}

    @app.post("/api/add-asset-to-db")
    async def add_asset_to_db(body: AssetRequest):
        exchange = Exchange.parse(body.exchange)
        await services.catalog.add_asset(exchange, body.asset)
        return {"success": True, "exchange": exchange.value, "asset": normalize_symbol(body.asset)}

    @app.post("/api/network-analysis")
    async def network_analysis(body: NetworkAnalysisRequest):
        result = await services.resolver.resolve(
            body.asset, Exchange.parse(body.exchange_a), Exchange.parse(body.exchange_b)
        )
        return network_to_dict(result)

    @app.post("/api/get-main-network")
    async def get_main_network(body: AssetRequest):
        exchange = Exchange.parse(body.exchange)
        network = await services.resolver.main_network(exchange, body.asset)
        return {"exchange": exchange.value, "asset": normalize_symbol(body.asset), "network": network}

    @app.post("/api/evaluate")
    async def evaluate(body: EvaluateRequest):
        result = services.evaluator.evaluate(_route_from_request(body))
        return {"evaluation": evaluation_to_dict(result)}

    @app.post("/api/investment-analysis")
    async def investment_analysis(body: InvestmentAnalysisRequest):
        if services.advisory is None:
            raise AdvisoryGenerationError("Advisory commentary is disabled")

        route = _route_from_request(body)
        result = services.evaluator.evaluate(route)
        if result is None:
            raise ValidationError("Insufficient input: capital, prices and fees must be valid")

        if body.network is not None:
            network = NetworkCompatibilityResult(
                is_compatible=body.network.is_compatible,
                common_networks=tuple(body.network.common_networks),
                reasoning=body.network.reasoning,
            )
        else:
            leg_a, leg_b = route.legs
            network = await services.resolver.resolve(leg_a.asset, leg_a.exchange, leg_b.exchange)

        commentary = await services.advisory.request_advisory(result, network, route.legs)
        return {
            "commentary": commentary,
            "evaluation": evaluation_to_dict(result),
            "network": network_to_dict(network),
        }

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run on server shutdown"""
        logger.info("Shutting down arbitrage evaluator server")
        await services.catalog.drain()
        resources = (
            services.price_source,
            services.resolver.source,
            getattr(services.advisory, "generator", None),
        )
        for resource in resources:
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        store_close = getattr(services.catalog.store, "close", None)
        if store_close is not None:
            await store_close()

    return app


def main(host: str = "0.0.0.0", port: Optional[int] = None, config: Optional[AppConfig] = None):
    """Run the server with uvicorn"""
    import uvicorn

    port = port or int(os.getenv("PORT", "8000"))
    uvicorn.run(create_app(build_services(config)), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
