"""
Cross-Exchange Arbitrage Evaluator.

Decision-support calculator for arbitrage between centralized exchanges:
fetches point-in-time prices, computes net spread after fees, checks that the
asset can be transferred between the two exchanges and produces advisory
commentary. Nothing here places orders.
"""

from cross_arbitrage.version import __version__

PROJECT_NAME = "cross-arbitrage"
VERSION = __version__

from cross_arbitrage.constants import Diagnosis, EvaluationMode, Exchange
from cross_arbitrage.evaluator import ArbitrageEvaluator
from cross_arbitrage.models import (
    ArbitrageLeg,
    ArbitrageRoute,
    AssetCatalogEntry,
    EvaluationResult,
    NetworkCompatibilityResult,
    NetworkSet,
    PriceQuote,
)
from cross_arbitrage.pair_formatter import format_pair, parse_price
from cross_arbitrage.retry import RetryExecutor

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageEvaluator",
    "ArbitrageLeg",
    "ArbitrageRoute",
    "AssetCatalogEntry",
    "Diagnosis",
    "EvaluationMode",
    "EvaluationResult",
    "Exchange",
    "NetworkCompatibilityResult",
    "NetworkSet",
    "PriceQuote",
    "RetryExecutor",
    "format_pair",
    "parse_price",
]
