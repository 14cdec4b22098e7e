"""
Transfer network compatibility between two exchanges.

Funds can move from exchange A to exchange B only over a network A allows
withdrawals on and B accepts deposits on. Lookup failures degrade to an
incompatible result with the cause in ``reasoning``; they never propagate.
"""

import asyncio
import logging
from typing import Iterable, Optional, Tuple

from .constants import SAME_EXCHANGE_REASONING, Exchange
from .exceptions import RetryExhaustedError
from .interfaces import NetworkSource
from .models import NetworkCompatibilityResult, NetworkSet
from .retry import RetryExecutor
from .utils import normalize_symbol

logger = logging.getLogger(__name__)


def common_networks(withdrawal: Iterable[str], deposit: Iterable[str]) -> Tuple[str, ...]:
    """Case-sensitive intersection in withdrawal order, without duplicates."""
    accepted = set(deposit)
    result = []
    for network in withdrawal:
        if network in accepted and network not in result:
            result.append(network)
    return tuple(result)


class NetworkCompatibilityResolver:
    """Decides whether an asset can be transferred between two exchanges"""

    def __init__(self, source: NetworkSource, retry: Optional[RetryExecutor] = None):
        self.source = source
        self.retry = retry or RetryExecutor()

    async def _lookup(self, exchange: Exchange, asset: str) -> NetworkSet:
        return await self.retry.execute(
            lambda: self.source.get_asset_networks(exchange, asset),
            description=f"{exchange.value} {asset} network lookup",
        )

    async def resolve(
        self, asset: str, source: Exchange, destination: Exchange
    ) -> NetworkCompatibilityResult:
        """
        Check whether ``asset`` can move from ``source`` to ``destination``.

        Returns:
            NetworkCompatibilityResult; never raises for lookup failures
        """
        source = Exchange.parse(source)
        destination = Exchange.parse(destination)
        symbol = normalize_symbol(asset)

        if source is destination:
            return NetworkCompatibilityResult(
                is_compatible=False, common_networks=(), reasoning=SAME_EXCHANGE_REASONING
            )

        try:
            source_networks, destination_networks = await asyncio.gather(
                self._lookup(source, symbol), self._lookup(destination, symbol)
            )
        except RetryExhaustedError as e:
            cause = e.last_error or e
            logger.warning(f"Network lookup for {symbol} gave up: {cause}")
            return self._failed(cause)
        except Exception as e:
            logger.warning(f"Network lookup for {symbol} failed: {e}")
            return self._failed(e)

        shared = common_networks(source_networks.withdrawal, destination_networks.deposit)
        if shared:
            reasoning = f"compatible via {', '.join(shared)}"
        else:
            reasoning = (
                f"no common network between {source.value} withdrawals "
                f"({self._describe(source_networks.withdrawal)}) and "
                f"{destination.value} deposits ({self._describe(destination_networks.deposit)})"
            )
        logger.info(f"{symbol} {source.value} -> {destination.value}: {reasoning}")
        return NetworkCompatibilityResult(
            is_compatible=bool(shared), common_networks=shared, reasoning=reasoning
        )

    @staticmethod
    def _describe(networks: Tuple[str, ...]) -> str:
        return ", ".join(networks) if networks else "none"

    @staticmethod
    def _failed(cause: BaseException) -> NetworkCompatibilityResult:
        return NetworkCompatibilityResult(
            is_compatible=False, common_networks=(), reasoning=f"network lookup failed: {cause}"
        )

    async def main_network(self, exchange: Exchange, asset: str) -> str:
        """
        Preferred network for an asset: first withdrawal network, else first
        deposit network, else an empty string.
        """
        exchange = Exchange.parse(exchange)
        try:
            networks = await self._lookup(exchange, normalize_symbol(asset))
        except Exception as e:
            logger.warning(f"Main network lookup for {asset} on {exchange.value} failed: {e}")
            return ""
        if networks.withdrawal:
            return networks.withdrawal[0]
        if networks.deposit:
            return networks.deposit[0]
        return ""
