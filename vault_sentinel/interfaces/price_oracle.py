"""Price feed protocol: price source abstraction."""
from typing import Protocol

from ..models import PriceSnapshot


class PriceFeed(Protocol):
    """Abstract interface for fetching the two reference asset prices."""

    @property
    def name(self) -> str: ...

    async def get_prices(self) -> PriceSnapshot: ...
