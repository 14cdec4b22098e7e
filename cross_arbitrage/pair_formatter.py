"""
Exchange pair naming and price payload parsing.

Maps a canonical ``(asset, counterpart)`` to each exchange's trading-pair
string and turns each exchange's ticker payload back into a Decimal price.
"""

import re
from decimal import Decimal
from typing import Any, Callable, Dict

from pydantic import ValidationError as PydanticValidationError

from .constants import DEFAULT_COUNTERPART, PAIR_DELIMITERS, PRICE_FIELDS, Exchange
from .exceptions import (
    DataError,
    ExchangeError,
    InvalidPriceError,
    UnknownPairError,
    ValidationError,
)
from .schemas import (
    BitmartEnvelope,
    GateioErrorPayload,
    GateioTicker,
    MexcErrorPayload,
    MexcTicker,
    PoloniexErrorPayload,
    PoloniexPrice,
)
from .utils import normalize_symbol, to_decimal


_SEPARATOR_RE = re.compile(r"[\s_\-]")

MEXC_INVALID_SYMBOL_CODE = -1121
BITMART_OK_CODE = 1000
GATEIO_INVALID_PAIR_LABEL = "INVALID_CURRENCY_PAIR"
POLONIEX_SYMBOL_NOT_FOUND_CODE = 21105


def _clean_symbol(value: str) -> str:
    # "JASMY/USDT" typed into an asset field means JASMY
    token = normalize_symbol(value).split("/")[0]
    return _SEPARATOR_RE.sub("", token)


def format_pair(
    exchange: Exchange, asset: str, counterpart: str = DEFAULT_COUNTERPART
) -> str:
    """
    Build the exchange-specific trading pair.

    Args:
        exchange: Target exchange
        asset: Asset symbol in any case, possibly with a stray separator
        counterpart: Quote currency (USDT by default)

    Returns:
        Pair string, e.g. ``JASMYUSDT`` on MEXC or ``JASMY_USDT`` on Gate.io

    Raises:
        ValidationError: If either symbol is empty after cleaning
    """
    exchange = Exchange.parse(exchange)
    clean_asset = _clean_symbol(asset)
    clean_counterpart = _clean_symbol(counterpart)
    if not clean_asset or not clean_counterpart:
        raise ValidationError(
            f"Asset and counterpart are required (got {asset!r}, {counterpart!r})"
        )
    return f"{clean_asset}{PAIR_DELIMITERS[exchange]}{clean_counterpart}"


def _validated_price(exchange: Exchange, raw_value: Any) -> Decimal:
    price = to_decimal(raw_value)
    if not price.is_finite() or price <= 0:
        raise InvalidPriceError(
            f"Invalid price received from {exchange.value}: {raw_value!r}",
            source=exchange.value,
        )
    return price


def _parse_mexc(raw: Any) -> Any:
    if isinstance(raw, dict) and "code" in raw and "price" not in raw:
        error = MexcErrorPayload.model_validate(raw)
        if error.code == MEXC_INVALID_SYMBOL_CODE or "invalid symbol" in error.msg.lower():
            raise UnknownPairError(
                f"MEXC API error: {error.msg}", exchange=Exchange.MEXC.value
            )
        raise ExchangeError(f"MEXC API error: {error.msg}", exchange=Exchange.MEXC.value)
    if isinstance(raw, list):
        if not raw:
            raise UnknownPairError(
                "MEXC returned no ticker for the pair", exchange=Exchange.MEXC.value
            )
        raw = raw[0]
    return MexcTicker.model_validate(raw)


def _parse_bitmart(raw: Any) -> Any:
    envelope = BitmartEnvelope.model_validate(raw)
    if envelope.code != BITMART_OK_CODE:
        if "symbol not found" in envelope.message.lower():
            raise UnknownPairError(
                f"Bitmart API error: {envelope.message}", exchange=Exchange.BITMART.value
            )
        raise ExchangeError(
            f"Bitmart API error: {envelope.message or envelope.code}",
            exchange=Exchange.BITMART.value,
        )
    if envelope.data is None or not envelope.data.tickers:
        raise UnknownPairError(
            "Bitmart returned no ticker for the pair", exchange=Exchange.BITMART.value
        )
    return envelope.data.tickers[0]


def _parse_gateio(raw: Any) -> Any:
    if isinstance(raw, dict):
        error = GateioErrorPayload.model_validate(raw)
        if error.label == GATEIO_INVALID_PAIR_LABEL:
            raise UnknownPairError(
                f"Gate.io API error: {error.message or error.label}",
                exchange=Exchange.GATEIO.value,
            )
        raise ExchangeError(
            f"Gate.io API error: {error.message or error.label}",
            exchange=Exchange.GATEIO.value,
        )
    if not isinstance(raw, list) or not raw:
        raise UnknownPairError(
            "Gate.io returned no ticker for the pair", exchange=Exchange.GATEIO.value
        )
    return GateioTicker.model_validate(raw[0])


def _parse_poloniex(raw: Any) -> Any:
    if isinstance(raw, dict) and "price" not in raw and "code" in raw:
        error = PoloniexErrorPayload.model_validate(raw)
        if error.code == POLONIEX_SYMBOL_NOT_FOUND_CODE:
            raise UnknownPairError(
                f"Poloniex API error: {error.message}", exchange=Exchange.POLONIEX.value
            )
        raise ExchangeError(
            f"Poloniex API error: {error.message or error.code}",
            exchange=Exchange.POLONIEX.value,
        )
    return PoloniexPrice.model_validate(raw)


_TICKER_PARSERS: Dict[Exchange, Callable[[Any], Any]] = {
    Exchange.MEXC: _parse_mexc,
    Exchange.BITMART: _parse_bitmart,
    Exchange.GATEIO: _parse_gateio,
    Exchange.POLONIEX: _parse_poloniex,
}


def parse_price(exchange: Exchange, raw_response: Any) -> Decimal:
    """
    Extract the last traded price from a raw exchange payload.

    Args:
        exchange: Exchange that produced the payload
        raw_response: Decoded JSON body

    Returns:
        Strictly positive Decimal price

    Raises:
        UnknownPairError: If the payload says the pair does not exist
        ExchangeError: For any other error payload
        DataError: If the payload does not match the exchange schema
        InvalidPriceError: If the price is not finite or not positive
    """
    exchange = Exchange.parse(exchange)
    try:
        ticker = _TICKER_PARSERS[exchange](raw_response)
    except PydanticValidationError as e:
        raise DataError(
            f"Unexpected {exchange.value} ticker payload: {e.error_count()} schema error(s)",
            source=exchange.value,
            details={"errors": e.errors(include_url=False)},
        ) from e
    return _validated_price(exchange, getattr(ticker, PRICE_FIELDS[exchange]))
