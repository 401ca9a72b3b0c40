"""CoinGecko price source (primary)."""
import logging
import ssl

import aiohttp
import certifi

from ..config import CoinGeckoConfig
from ..errors import PriceFeedError
from ..models import PriceSnapshot

logger = logging.getLogger(__name__)


class CoinGeckoFeed:
    """Fetch LINK/WETH USD prices and 24h changes from CoinGecko."""

    def __init__(self, config: CoinGeckoConfig, timeout: int = 10) -> None:
        self.url = config.url
        self.asset_a_id = config.asset_a_id
        self.asset_b_id = config.asset_b_id
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "CoinGecko"

    async def get_prices(self) -> PriceSnapshot:
        params = {
            "ids": f"{self.asset_a_id},{self.asset_b_id}",
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }

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
                        raise PriceFeedError(f"CoinGecko HTTP {response.status}")
                    data = await response.json()
        except PriceFeedError:
            raise
        except Exception as e:
            raise PriceFeedError(f"CoinGecko request failed: {e}") from e

        try:
            return self._parse(data)
        except PriceFeedError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PriceFeedError(f"CoinGecko response is malformed: {e}") from e

    def _parse(self, data: dict) -> PriceSnapshot:
        a = data.get(self.asset_a_id) or {}
        b = data.get(self.asset_b_id) or {}
        price_a = float(a.get("usd") or 0)
        price_b = float(b.get("usd") or 0)
        if price_a <= 0 or price_b <= 0:
            raise PriceFeedError("CoinGecko returned no valid prices")

        change_a = a.get("usd_24h_change")
        change_b = b.get("usd_24h_change")

        logger.info("CoinGecko prices: A=$%.4f B=$%.4f", price_a, price_b)
        return PriceSnapshot(
            asset_a_usd=price_a,
            asset_b_usd=price_b,
            cross_rate=price_b / price_a,
            source=self.name,
            change_24h_a=float(change_a) if change_a is not None else None,
            change_24h_b=float(change_b) if change_b is not None else None,
        )
