"""
Asset catalog: which assets each exchange is known to trade.

Reads never wait on the durable store. ``get_assets`` answers from the
configured fallback list merged with the last store snapshot seen by this
process, and schedules a background reconciliation that seeds the store with
any fallback entries it is missing. Writes are serialized per exchange so two
concurrent ``add_asset`` calls cannot drop each other's update.
"""

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from .config_loader import CatalogConfig
from .constants import Exchange
from .exceptions import PersistenceError, ValidationError
from .interfaces import CatalogStore
from .models import AssetCatalogEntry
from .utils import normalize_symbol

logger = logging.getLogger(__name__)


def _merge(*lists: Iterable[str]) -> List[str]:
    """Union of symbol lists, first occurrence wins, case-insensitive."""
    seen = set()
    merged = []
    for assets in lists:
        for asset in assets:
            symbol = normalize_symbol(asset)
            if symbol and symbol not in seen:
                seen.add(symbol)
                merged.append(symbol)
    return merged


class AssetCatalog:
    """Per-exchange asset lists backed by a ``CatalogStore``"""

    def __init__(self, store: CatalogStore, config: Optional[CatalogConfig] = None):
        self.store = store
        self.config = config or CatalogConfig()
        self._snapshots: Dict[Exchange, FrozenSet[str]] = {}
        self._locks: Dict[Exchange, asyncio.Lock] = {}
        self._reconciling: Dict[Exchange, asyncio.Task] = {}

    def _lock_for(self, exchange: Exchange) -> asyncio.Lock:
        lock = self._locks.get(exchange)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[exchange] = lock
        return lock

    def _cached(self, exchange: Exchange) -> FrozenSet[str]:
        fallback = self.config.fallback_for(exchange)
        return frozenset(_merge(fallback, self._snapshots.get(exchange, ())))

    async def get_assets(self, exchange: Exchange) -> FrozenSet[str]:
        """
        Return known assets for an exchange without waiting on the store.

        The result is the fallback list plus whatever the store held the last
        time it was read. A reconciliation task is started in the background
        unless one is already running for this exchange.
        """
        exchange = Exchange.parse(exchange)
        self._schedule_reconcile(exchange)
        return self._cached(exchange)

    async def get_entry(self, exchange: Exchange) -> AssetCatalogEntry:
        exchange = Exchange.parse(exchange)
        return AssetCatalogEntry(exchange=exchange, assets=await self.get_assets(exchange))

    def sorted_assets(self, exchange: Exchange) -> List[str]:
        """Cached merge as a sorted list (no I/O, no reconciliation)"""
        return sorted(self._cached(Exchange.parse(exchange)))

    def _schedule_reconcile(self, exchange: Exchange) -> None:
        task = self._reconciling.get(exchange)
        if task is not None and not task.done():
            return
        task = asyncio.create_task(self._reconcile(exchange))
        self._reconciling[exchange] = task
        task.add_done_callback(lambda t, ex=exchange: self._forget(ex, t))

    def _forget(self, exchange: Exchange, task: asyncio.Task) -> None:
        if self._reconciling.get(exchange) is task:
            del self._reconciling[exchange]

    async def _reconcile(self, exchange: Exchange) -> None:
        fallback = self.config.fallback_for(exchange)
        async with self._lock_for(exchange):
            try:
                stored = _merge(await self.store.get(exchange))
                merged = _merge(stored, fallback)
                if len(merged) != len(stored):
                    await self.store.put(exchange, merged)
                    logger.info(
                        f"Seeded {len(merged) - len(stored)} fallback assets for {exchange.value}"
                    )
                self._snapshots[exchange] = frozenset(merged)
            except PersistenceError as e:
                logger.warning(f"Asset catalog reconciliation failed for {exchange.value}: {e}")
            except Exception as e:
                logger.error(
                    f"Unexpected error reconciling assets for {exchange.value}: {e}",
                    exc_info=True,
                )

    async def add_asset(self, exchange: Exchange, asset: str) -> None:
        """
        Record an asset as tradable on an exchange.

        No-op when the asset is already listed (case-insensitive). Store
        failures are logged, never raised.

        Raises:
            ValidationError: If the symbol is empty
        """
        exchange = Exchange.parse(exchange)
        symbol = normalize_symbol(asset)
        if not symbol:
            raise ValidationError("Asset symbol must not be empty")

        async with self._lock_for(exchange):
            try:
                current = await self.store.get(exchange)
                if any(normalize_symbol(a) == symbol for a in current):
                    logger.debug(f"{symbol} already listed for {exchange.value}")
                    self._snapshots[exchange] = frozenset(_merge(current))
                    return
                updated = list(current) + [symbol]
                await self.store.put(exchange, updated)
                self._snapshots[exchange] = frozenset(_merge(updated))
                logger.info(f"Added {symbol} to {exchange.value} asset catalog")
            except PersistenceError as e:
                logger.warning(f"Could not record {symbol} for {exchange.value}: {e}")
            except Exception as e:
                logger.error(
                    f"Unexpected error recording {symbol} for {exchange.value}: {e}",
                    exc_info=True,
                )

    async def drain(self) -> None:
        """Wait for outstanding reconciliation tasks"""
        while True:
            pending = [t for t in self._reconciling.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
