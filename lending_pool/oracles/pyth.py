"""Pyth Network price feed — publishes Hermes prices to the pool oracle."""
from __future__ import annotations

import logging
import ssl
from typing import Protocol

import aiohttp
import certifi

from ..config import PythConfig
from ..units import format_fixed

logger = logging.getLogger(__name__)

# Pool prices carry 7 decimals
_TARGET_EXPO = -7


class PriceSink(Protocol):
    def batch_set_prices(self, caller: str, prices: dict[str, int]) -> None: ...


def to_fixed_price(price_raw: int, expo: int) -> int:
    """Rescale a Pyth ``price * 10^expo`` into 7-decimal fixed point (floored)."""
    shift = expo - _TARGET_EXPO
    if shift >= 0:
        return price_raw * 10**shift
    return price_raw // 10**-shift


class PythPriceFeed:
    """Fetch prices from Pyth Network Hermes."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, int]:
        """Fetch current prices as 7-decimal fixed-point integers.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.
        """
        prices: dict[str, int] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    id_to_assets: dict[str, list[str]] = {}
                    for asset, feed_id in feeds.items():
                        id_to_assets.setdefault(feed_id, []).append(asset)

                    for item in parsed:
                        feed_id = item.get("id")
                        price_data = item.get("price", {})
                        price = to_fixed_price(
                            int(price_data.get("price", 0)), int(price_data.get("expo", 0))
                        )
                        if price <= 0:
                            logger.warning("Ignoring non-positive price for feed %s", feed_id)
                            continue

                        for asset in id_to_assets.get(feed_id, []):
                            prices[asset] = price

                    logger.info("Fetched prices from Pyth Network:")
                    for asset, price in sorted(prices.items()):
                        logger.info("  %s: $%s", asset, format_fixed(price, 4))

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices

    async def publish(
        self, oracle: PriceSink, admin: str, symbols: list[str] | None = None
    ) -> dict[str, int]:
        """Fetch prices and write them to ``oracle`` in one batch."""
        prices = await self.fetch_prices(symbols)
        if prices:
            oracle.batch_set_prices(admin, prices)
        return prices
