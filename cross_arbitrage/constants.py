"""
Constants and enums for the cross-exchange arbitrage evaluator.

Centralizes exchange identifiers, per-exchange conventions and default values
so every exchange-specific rule is defined once and covers every exchange.
"""

from enum import Enum
from typing import Dict, Tuple

from .exceptions import UnknownExchangeError


class Exchange(Enum):
    """Closed set of supported exchanges (value is the display name)."""

    MEXC = "MEXC"
    BITMART = "Bitmart"
    GATEIO = "Gate.io"
    POLONIEX = "Poloniex"

    @classmethod
    def parse(cls, value) -> "Exchange":
        """Resolve an exchange from its display name or member name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            for member in cls:
                if token in (member.value.lower(), member.name.lower()):
                    return member
        raise UnknownExchangeError(
            f"Unknown exchange: {value!r}. "
            f"Supported exchanges: {', '.join(e.value for e in cls)}",
            exchange=str(value),
        )


class Diagnosis(Enum):
    """Classification of an evaluated route."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class EvaluationMode(Enum):
    """Route shapes supported by the evaluator."""

    SINGLE_ASSET = "single_asset"
    TRIANGULATION = "triangulation"
    SIMPLE_SPREAD = "simple_spread"


DEFAULT_COUNTERPART = "USDT"

# Separator placed between asset and counterpart ("" means concatenation)
PAIR_DELIMITERS: Dict[Exchange, str] = {
    Exchange.MEXC: "",
    Exchange.BITMART: "_",
    Exchange.GATEIO: "_",
    Exchange.POLONIEX: "_",
}

# Ticker field holding the last traded price
PRICE_FIELDS: Dict[Exchange, str] = {
    Exchange.MEXC: "price",
    Exchange.BITMART: "last_price",
    Exchange.GATEIO: "last",
    Exchange.POLONIEX: "price",
}

# Public ticker endpoints; {pair} is the exchange-formatted pair
PRICE_URLS: Dict[Exchange, str] = {
    Exchange.MEXC: "https://api.mexc.com/api/v3/ticker/price?symbol={pair}",
    Exchange.BITMART: "https://api-cloud.bitmart.com/spot/v1/ticker?symbol={pair}",
    Exchange.GATEIO: "https://api.gateio.ws/api/v4/spot/tickers?currency_pair={pair}",
    Exchange.POLONIEX: "https://api.poloniex.com/markets/{pair}/price",
}

# ccxt class names; Gate.io is "gate" in ccxt 4.x
CCXT_IDS: Dict[Exchange, str] = {
    Exchange.MEXC: "mexc",
    Exchange.BITMART: "bitmart",
    Exchange.GATEIO: "gate",
    Exchange.POLONIEX: "poloniex",
}

# Exchanges whose currency networks are read from their public REST API
# instead of ccxt
NETWORK_URLS: Dict[Exchange, str] = {
    Exchange.BITMART: "https://api-cloud.bitmart.com/spot/v1/currencies",
}

# Bootstrap catalog served while the durable store warms up
FALLBACK_ASSETS: Dict[Exchange, Tuple[str, ...]] = {
    Exchange.MEXC: (
        "JASMY", "PEPE", "BTC", "ETH", "SOL", "DOGE", "SHIB", "MATIC", "AVAX", "LINK",
    ),
    Exchange.BITMART: (
        "JASMY", "PEPE", "BTC", "ETH", "SOL", "DOGE", "SHIB", "TRX", "LTC", "XRP",
    ),
    Exchange.GATEIO: (
        "JASMY", "PEPE", "BTC", "ETH", "SOL", "ADA", "DOT", "XLM", "BCH", "FIL",
    ),
    Exchange.POLONIEX: (
        "JASMY", "PEPE", "BTC", "ETH", "SOL", "USDC", "TRX", "DOGE", "SHIB", "LTC",
    ),
}

# Simulated transfer networks used for paper runs (asset -> exchange -> networks)
SIMULATED_NETWORKS: Dict[str, Dict[Exchange, Tuple[str, ...]]] = {
    "JASMY": {
        Exchange.MEXC: ("ERC20", "BEP20"),
        Exchange.BITMART: ("ERC20",),
        Exchange.GATEIO: ("ERC20", "Polygon"),
    },
    "PEPE": {
        Exchange.MEXC: ("ERC20", "Arbitrum"),
        Exchange.BITMART: ("ERC20",),
        Exchange.GATEIO: ("ERC20", "Arbitrum", "Solana"),
    },
    "BTC": {
        Exchange.MEXC: ("Bitcoin", "Lightning", "BEP20"),
        Exchange.BITMART: ("Bitcoin", "BEP20", "ERC20"),
        Exchange.GATEIO: ("Bitcoin", "Lightning", "BEP20"),
    },
}

SAME_EXCHANGE_REASONING = "same exchange, no transfer required"

# Retry policy
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_SECONDS = 1.0
SERVICE_UNAVAILABLE_STATUS = 503

# Live polling
DEFAULT_POLL_INTERVAL_SECONDS = 15.0

# Dead zone (percentage points) around zero spread reported as neutral
DEFAULT_NEUTRAL_BAND_PCT = "0.0001"

# Advisory verdict threshold (percent net spread considered worth the risk)
DEFAULT_ADVISORY_MIN_SPREAD_PCT = "0.5"

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_DB_PATH = "data/asset_catalog.db"
