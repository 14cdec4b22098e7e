"""
Durable backing stores for the asset catalog.

Both stores keep one whole asset list per exchange and replace it on write;
merge semantics live in ``AssetCatalog``, not here.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import aiosqlite

from .constants import Exchange
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class InMemoryCatalogStore:
    """Process-local store for tests and paper runs"""

    def __init__(self, initial: Optional[Dict[Exchange, Sequence[str]]] = None):
        self._data: Dict[Exchange, List[str]] = {
            exchange: list(assets) for exchange, assets in (initial or {}).items()
        }
        self._lock = asyncio.Lock()
        self.put_count = 0

    async def get(self, exchange: Exchange) -> List[str]:
        async with self._lock:
            return list(self._data.get(exchange, []))

    async def put(self, exchange: Exchange, assets: Sequence[str]) -> None:
        async with self._lock:
            self._data[exchange] = list(assets)
            self.put_count += 1


class SqliteCatalogStore:
    """
    SQLite-backed catalog store.

    One row per exchange holding a JSON-encoded asset list. The connection is
    opened lazily on first use; driver errors surface as ``PersistenceError``.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def initialize(self):
        """Open the connection and create the schema"""
        if self._conn is not None:
            return

        async with self._lock:
            if self._conn is not None:
                return
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self.db_path)
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS exchange_assets (
                        exchange TEXT PRIMARY KEY,
                        assets_json TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                await conn.commit()
            except (aiosqlite.Error, OSError) as e:
                raise PersistenceError(f"Failed to open asset catalog at {self.db_path}: {e}")

            self._conn = conn
            logger.info(f"Asset catalog store ready at {self.db_path}")

    @asynccontextmanager
    async def _connection(self, exchange: Exchange):
        await self.initialize()
        try:
            yield self._conn
        except aiosqlite.Error as e:
            raise PersistenceError(
                f"Asset catalog store error for {exchange.value}: {e}",
                exchange=exchange.value,
            )

    async def get(self, exchange: Exchange) -> List[str]:
        async with self._connection(exchange) as conn:
            cursor = await conn.execute(
                "SELECT assets_json FROM exchange_assets WHERE exchange = ?",
                (exchange.value,),
            )
            row = await cursor.fetchone()
            await cursor.close()

        if row is None:
            return []
        try:
            assets = json.loads(row[0])
        except ValueError as e:
            raise PersistenceError(
                f"Corrupt asset list stored for {exchange.value}: {e}",
                exchange=exchange.value,
            )
        if not isinstance(assets, list):
            raise PersistenceError(
                f"Corrupt asset list stored for {exchange.value}: expected a list",
                exchange=exchange.value,
            )
        return [str(asset) for asset in assets]

    async def put(self, exchange: Exchange, assets: Sequence[str]) -> None:
        async with self._connection(exchange) as conn:
            await conn.execute(
                """
                INSERT INTO exchange_assets (exchange, assets_json, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(exchange) DO UPDATE SET
                    assets_json = excluded.assets_json,
                    updated_at = excluded.updated_at
                """,
                (exchange.value, json.dumps(list(assets))),
            )
            await conn.commit()

    async def close(self):
        """Close the connection if open"""
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
