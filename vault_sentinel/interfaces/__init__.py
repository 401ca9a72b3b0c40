"""Protocol interfaces for the vault sentinel."""
from .chain import ChainClient
from .notifier import Notifier
from .price_oracle import PriceFeed

__all__ = ["ChainClient", "Notifier", "PriceFeed"]
