"""
Dependency injection interfaces for external collaborators.

The evaluation core talks to price feeds, transfer-network feeds, the asset
catalog store and the advisory generator only through these protocols, so
tests and paper runs can substitute fixtures without process-wide state.
"""

from decimal import Decimal
from typing import List, Protocol, Sequence, runtime_checkable

from .constants import Exchange
from .models import NetworkSet


@runtime_checkable
class PriceSource(Protocol):
    """Protocol for point-in-time price lookups."""

    async def get_price(self, exchange: Exchange, asset: str, counterpart: str) -> Decimal:
        """Return a strictly positive price or raise a typed error."""
        ...


@runtime_checkable
class NetworkSource(Protocol):
    """Protocol for deposit/withdrawal network lookups."""

    async def get_asset_networks(self, exchange: Exchange, asset: str) -> NetworkSet:
        """Return enabled networks; empty tuples mean no data for the asset."""
        ...


@runtime_checkable
class CatalogStore(Protocol):
    """Protocol for the durable asset catalog (whole-value replace)."""

    async def get(self, exchange: Exchange) -> List[str]:
        """Return the stored asset list for an exchange (empty if none)."""
        ...

    async def put(self, exchange: Exchange, assets: Sequence[str]) -> None:
        """Replace the stored asset list for an exchange."""
        ...


@runtime_checkable
class AdvisoryGenerator(Protocol):
    """Protocol for natural-language advisory generation."""

    async def generate(self, context) -> str:
        """Return commentary text for an ``AdvisoryContext``."""
        ...
