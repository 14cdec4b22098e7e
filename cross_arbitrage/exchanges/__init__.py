from .network_sources import (
    BitmartNetworkSource,
    CcxtNetworkSource,
    RoutedNetworkSource,
    StaticNetworkSource,
    build_network_source,
)
from .price_sources import RestPriceSource, StaticPriceSource

__all__ = [
    "BitmartNetworkSource",
    "CcxtNetworkSource",
    "RestPriceSource",
    "RoutedNetworkSource",
    "StaticNetworkSource",
    "StaticPriceSource",
    "build_network_source",
]
