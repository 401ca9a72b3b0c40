"""Price sources."""
from .coincap import CoinCapFeed
from .coingecko import CoinGeckoFeed

__all__ = ["CoinGeckoFeed", "CoinCapFeed"]
