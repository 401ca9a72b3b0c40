"""Price service: primary source with a secondary fallback."""
from __future__ import annotations

import logging

from ..errors import PriceFeedError
from ..interfaces.price_oracle import PriceFeed
from ..models import PriceSnapshot

logger = logging.getLogger(__name__)


class PriceService:
    """Fresh prices on every call; no caching between calls."""

    def __init__(self, primary: PriceFeed, secondary: PriceFeed | None = None) -> None:
        self._primary = primary
        self._secondary = secondary

    async def get_prices(self) -> PriceSnapshot:
        try:
            return await self._primary.get_prices()
        except PriceFeedError as primary_error:
            if self._secondary is None:
                raise
            logger.warning(
                "%s failed (%s), falling back to %s",
                self._primary.name, primary_error, self._secondary.name,
            )
            try:
                return await self._secondary.get_prices()
            except PriceFeedError as secondary_error:
                raise PriceFeedError(
                    f"All price sources failed: {primary_error}; {secondary_error}"
                ) from secondary_error
