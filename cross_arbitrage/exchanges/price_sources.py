"""
Price sources: public REST tickers and a static fixture table.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple

import aiohttp

from ..constants import (
    DEFAULT_COUNTERPART,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    PRICE_URLS,
    SERVICE_UNAVAILABLE_STATUS,
    Exchange,
)
from ..exceptions import DataError, ExchangeError, InvalidPriceError, TransientServiceError
from ..pair_formatter import format_pair, parse_price
from ..utils import is_positive_decimal, normalize_symbol, to_decimal

logger = logging.getLogger(__name__)

RATE_LIMITED_STATUS = 429


class RestPriceSource:
    """
    Fetches last traded prices from each exchange's public ticker endpoint.

    Prices are never retried here: a failed lookup aborts the evaluation
    rather than substituting a stale or zero price.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        url_templates: Optional[Mapping[Exchange, str]] = None,
    ):
        """
        Initialize REST price source.

        Args:
            session: Shared aiohttp session; one is created lazily if omitted
            timeout_seconds: Total timeout per request
            url_templates: Per-exchange URL overrides containing ``{pair}``
        """
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.url_templates: Dict[Exchange, str] = dict(PRICE_URLS)
        if url_templates:
            self.url_templates.update(url_templates)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def get_price(
        self, exchange: Exchange, asset: str, counterpart: str = DEFAULT_COUNTERPART
    ) -> Decimal:
        """
        Fetch the last traded price of ``asset`` in ``counterpart``.

        Raises:
            TransientServiceError: HTTP 503 from the exchange
            ExchangeError: Rate limiting, connection failure or an error payload
            DataError: Body is not JSON or does not match the ticker schema
        """
        exchange = Exchange.parse(exchange)
        pair = format_pair(exchange, asset, counterpart)
        url = self.url_templates[exchange].format(pair=pair)
        session = await self._get_session()

        logger.debug(f"Fetching {pair} price from {exchange.value}")
        try:
            async with session.get(url) as response:
                if response.status == SERVICE_UNAVAILABLE_STATUS:
                    raise TransientServiceError(
                        f"{exchange.value} ticker service unavailable", endpoint=url
                    )
                if response.status == RATE_LIMITED_STATUS:
                    raise ExchangeError(
                        f"Rate limited by {exchange.value}, try again later",
                        exchange=exchange.value,
                        symbol=pair,
                    )
                if response.status >= 500:
                    raise ExchangeError(
                        f"{exchange.value} returned HTTP {response.status}",
                        exchange=exchange.value,
                        symbol=pair,
                    )
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise DataError(
                        f"{exchange.value} returned a non-JSON ticker body: {e}",
                        source=exchange.value,
                        symbol=pair,
                    )
        except aiohttp.ClientError as e:
            raise ExchangeError(
                f"Could not reach {exchange.value}: {e}", exchange=exchange.value, symbol=pair
            )
        except asyncio.TimeoutError:
            raise ExchangeError(
                f"Timed out fetching {pair} from {exchange.value}",
                exchange=exchange.value,
                symbol=pair,
            )

        price = parse_price(exchange, payload)
        logger.debug(f"{exchange.value} {pair} = {price}")
        return price


class StaticPriceSource:
    """Fixture price table keyed by ``(exchange, asset)``"""

    def __init__(self, prices: Optional[Mapping[Tuple[Exchange, str], object]] = None):
        self._prices: Dict[Tuple[Exchange, str], Decimal] = {}
        for (exchange, asset), price in (prices or {}).items():
            self.set_price(exchange, asset, price)

    def set_price(self, exchange: Exchange, asset: str, price) -> None:
        self._prices[(Exchange.parse(exchange), normalize_symbol(asset))] = to_decimal(price)

    async def get_price(
        self, exchange: Exchange, asset: str, counterpart: str = DEFAULT_COUNTERPART
    ) -> Decimal:
        exchange = Exchange.parse(exchange)
        symbol = normalize_symbol(asset)
        try:
            price = self._prices[(exchange, symbol)]
        except KeyError:
            raise ExchangeError(
                f"No price for {symbol}/{counterpart} on {exchange.value}",
                exchange=exchange.value,
                symbol=symbol,
            )
        if not is_positive_decimal(price):
            raise InvalidPriceError(
                f"Invalid price for {symbol} on {exchange.value}: {price}",
                source=exchange.value,
                symbol=symbol,
            )
        return price
