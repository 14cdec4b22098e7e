"""
Deposit/withdrawal network sources.

``CcxtNetworkSource`` reads the per-network flags ccxt exposes from each
exchange's currency endpoint. ``BitmartNetworkSource`` reads Bitmart's public
currency list directly, and ``RoutedNetworkSource`` picks a source per
exchange. ``StaticNetworkSource`` serves a fixture table for paper runs and
tests.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import aiohttp
import ccxt.async_support as ccxt

from ..constants import (
    CCXT_IDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    NETWORK_URLS,
    SERVICE_UNAVAILABLE_STATUS,
    SIMULATED_NETWORKS,
    Exchange,
)
from ..exceptions import DataError, ExchangeError, TransientServiceError
from ..models import NetworkSet
from ..utils import normalize_symbol

logger = logging.getLogger(__name__)

ExchangeFactory = Callable[[Exchange], Any]


def _is_enabled(flag: Any) -> bool:
    # ccxt leaves flags as None when the exchange does not report them
    return flag is not False


class CcxtNetworkSource:
    """Network lookups through ``ccxt.async_support`` currency metadata"""

    def __init__(
        self,
        exchange_factory: Optional[ExchangeFactory] = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        self.timeout_seconds = timeout_seconds
        self._exchange_factory = exchange_factory or self._default_factory

    def _default_factory(self, exchange: Exchange):
        exchange_class = getattr(ccxt, CCXT_IDS[exchange], None)
        if exchange_class is None:
            raise ExchangeError(
                f"Installed ccxt has no '{CCXT_IDS[exchange]}' exchange class",
                exchange=exchange.value,
            )
        return exchange_class(
            {"enableRateLimit": True, "timeout": int(self.timeout_seconds * 1000)}
        )

    async def _fetch_currencies(self, exchange: Exchange) -> Dict[str, Any]:
        client = self._exchange_factory(exchange)
        try:
            return await client.fetch_currencies() or {}
        except ccxt.ExchangeNotAvailable as e:
            raise TransientServiceError(
                f"{exchange.value} currency endpoint unavailable: {e}",
                endpoint=CCXT_IDS[exchange],
            )
        except ccxt.BaseError as e:
            raise ExchangeError(
                f"Failed to fetch currencies from {exchange.value}: {e}",
                exchange=exchange.value,
            )
        finally:
            await client.close()

    async def get_asset_networks(self, exchange: Exchange, asset: str) -> NetworkSet:
        """
        Return enabled withdrawal and deposit networks for an asset.

        An asset the exchange does not list yields an empty ``NetworkSet``.
        """
        exchange = Exchange.parse(exchange)
        symbol = normalize_symbol(asset)
        currencies = await self._fetch_currencies(exchange)

        currency = currencies.get(symbol)
        if not currency:
            logger.info(f"{exchange.value} does not list {symbol}")
            return NetworkSet()

        withdrawal: List[str] = []
        deposit: List[str] = []
        for code, network in (currency.get("networks") or {}).items():
            network = network or {}
            if not _is_enabled(network.get("active")):
                continue
            if _is_enabled(network.get("withdraw")):
                withdrawal.append(code)
            if _is_enabled(network.get("deposit")):
                deposit.append(code)

        logger.debug(
            f"{exchange.value} {symbol} networks: withdraw={withdrawal} deposit={deposit}"
        )
        return NetworkSet(withdrawal=tuple(withdrawal), deposit=tuple(deposit))


class BitmartNetworkSource:
    """
    Network lookups from Bitmart's public currency list.

    Each currency carries a ``network_list`` with ``deposit_enabled`` and
    ``withdraw_enabled`` flags per network name.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        url: Optional[str] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.url = url or NETWORK_URLS[Exchange.BITMART]

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _fetch_currencies(self) -> List[Dict[str, Any]]:
        session = await self._get_session()
        try:
            async with session.get(self.url) as response:
                if response.status == SERVICE_UNAVAILABLE_STATUS:
                    raise TransientServiceError(
                        "Bitmart currency service unavailable", endpoint=self.url
                    )
                if response.status >= 400:
                    raise ExchangeError(
                        f"Bitmart currency list returned HTTP {response.status}",
                        exchange=Exchange.BITMART.value,
                    )
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise DataError(
                        f"Bitmart returned a non-JSON currency list: {e}",
                        source=Exchange.BITMART.value,
                    )
        except aiohttp.ClientError as e:
            raise ExchangeError(f"Could not reach Bitmart: {e}", exchange=Exchange.BITMART.value)
        except asyncio.TimeoutError:
            raise ExchangeError(
                "Timed out fetching the Bitmart currency list", exchange=Exchange.BITMART.value
            )

        # Current responses wrap the list in a {"code", "message", "data"} envelope
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        currencies = payload.get("currencies") if isinstance(payload, dict) else None
        if not isinstance(currencies, list):
            raise DataError("Unexpected Bitmart currency payload", source=Exchange.BITMART.value)
        return currencies

    async def get_asset_networks(self, exchange: Exchange, asset: str) -> NetworkSet:
        symbol = normalize_symbol(asset)
        for currency in await self._fetch_currencies():
            if not isinstance(currency, dict):
                continue
            if normalize_symbol(str(currency.get("currency") or "")) != symbol:
                continue
            networks = [
                n for n in currency.get("network_list") or [] if isinstance(n, dict) and n.get("name")
            ]
            return NetworkSet(
                withdrawal=tuple(n["name"] for n in networks if n.get("withdraw_enabled")),
                deposit=tuple(n["name"] for n in networks if n.get("deposit_enabled")),
            )

        logger.info(f"Bitmart does not list {symbol}")
        return NetworkSet()


class RoutedNetworkSource:
    """Dispatches each lookup to the source registered for its exchange"""

    def __init__(self, default, routes: Optional[Mapping[Exchange, Any]] = None):
        self.default = default
        self.routes: Dict[Exchange, Any] = dict(routes or {})

    async def get_asset_networks(self, exchange: Exchange, asset: str) -> NetworkSet:
        exchange = Exchange.parse(exchange)
        source = self.routes.get(exchange, self.default)
        return await source.get_asset_networks(exchange, asset)

    async def close(self):
        for source in [self.default, *self.routes.values()]:
            close = getattr(source, "close", None)
            if close is not None:
                await close()


def build_network_source(timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS):
    """Live network source: ccxt for most exchanges, REST for Bitmart."""
    return RoutedNetworkSource(
        CcxtNetworkSource(timeout_seconds=timeout_seconds),
        {Exchange.BITMART: BitmartNetworkSource(timeout_seconds=timeout_seconds)},
    )


class StaticNetworkSource:
    """
    Fixture network table: ``asset -> exchange -> networks``.

    Listed networks count for both withdrawal and deposit unless the table
    value is a ``NetworkSet``.
    """

    def __init__(self, table: Optional[Mapping[str, Mapping[Exchange, Any]]] = None):
        table = SIMULATED_NETWORKS if table is None else table
        self._table: Dict[Tuple[str, Exchange], NetworkSet] = {}
        for asset, per_exchange in table.items():
            for exchange, networks in per_exchange.items():
                if not isinstance(networks, NetworkSet):
                    networks = NetworkSet(withdrawal=tuple(networks), deposit=tuple(networks))
                self._table[(normalize_symbol(asset), Exchange.parse(exchange))] = networks

    async def get_asset_networks(self, exchange: Exchange, asset: str) -> NetworkSet:
        return self._table.get((normalize_symbol(asset), Exchange.parse(exchange)), NetworkSet())
