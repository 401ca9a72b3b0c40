"""CoinCap price source (secondary). ETH is used as the WETH proxy."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import CoinCapConfig
from ..errors import PriceFeedError
from ..models import PriceSnapshot

logger = logging.getLogger(__name__)


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


class CoinCapFeed:
    """Fetch LINK/ETH USD prices from the CoinCap assets endpoint."""

    def __init__(self, config: CoinCapConfig, timeout: int = 10) -> None:
        self.url = config.url
        self.asset_a_id = config.asset_a_id
        self.asset_b_id = config.asset_b_id
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "CoinCap"

    async def get_prices(self) -> PriceSnapshot:
        params = {"ids": f"{self.asset_a_id},{self.asset_b_id}"}

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self.url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise PriceFeedError(f"CoinCap HTTP {response.status}")
                    data = await response.json()
        except PriceFeedError:
            raise
        except Exception as e:
            raise PriceFeedError(f"CoinCap request failed: {e}") from e

        try:
            return self._parse(data)
        except PriceFeedError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PriceFeedError(f"CoinCap response is malformed: {e}") from e

    def _parse(self, data: dict) -> PriceSnapshot:
        assets = {item.get("id"): item for item in data.get("data", [])}
        a = assets.get(self.asset_a_id)
        b = assets.get(self.asset_b_id)
        if not a or not b:
            raise PriceFeedError("CoinCap response is missing an asset")

        price_a = float(a.get("priceUsd") or 0)
        price_b = float(b.get("priceUsd") or 0)
        if price_a <= 0 or price_b <= 0:
            raise PriceFeedError("CoinCap returned no valid prices")

        logger.info("CoinCap prices: A=$%.4f B=$%.4f", price_a, price_b)
        return PriceSnapshot(
            asset_a_usd=price_a,
            asset_b_usd=price_b,
            cross_rate=price_b / price_a,
            source=self.name,
            change_24h_a=_optional_float(a.get("changePercent24Hr")),
            change_24h_b=_optional_float(b.get("changePercent24Hr")),
        )
