# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Price oracle client for the Pyth Hermes REST API."""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import httpx

from ..types import (
    OracleConfig,
    OracleUnavailableError,
    PriceFeed,
    PriceQuote
)


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class PriceOracleClient:
    """Fetches the latest rate for a currency pair.

    Every call issues a fresh request. Any failure falls back to the pair's
    configured constant, so callers never see an exception for a known pair.
    """

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or OracleConfig()
        self._http_client = http_client

    def feed_for(self, pair: str) -> PriceFeed:
        try:
            return self.config.feeds[pair]
        except KeyError:
            raise ValueError(f"No price feed configured for pair {pair!r}") from None

    async def get_rate(self, pair: str) -> Decimal:
        """Returns the rate for `pair` rounded to 2 decimal places."""
        quote = await self.get_quote(pair)
        return quote.price

    async def get_quote(self, pair: str) -> PriceQuote:
        """Returns the latest quote, or the fallback quote if the feed is unavailable."""
        feed = self.feed_for(pair)
        try:
            quote = await self._fetch_quote(feed)
        except OracleUnavailableError as e:
            logger.warning(f"{e}; using fallback price of ${feed.fallback_rate} for {pair}")
            return PriceQuote(
                pair=pair,
                price=feed.fallback_rate.quantize(CENTS, rounding=ROUND_HALF_UP),
                source="fallback",
            )

        logger.info(
            f"📈 Fetched {pair} price from Pyth: ${quote.price} "
            f"(±${quote.confidence}), updated {quote.publish_time.isoformat()}"
        )
        return quote

    async def _get(self, url: str, params: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(
                url, params=params, timeout=self.config.timeout_seconds
            )
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            return await client.get(url, params=params)

    async def _fetch_quote(self, feed: PriceFeed) -> PriceQuote:
        url = f"{self.config.base_url.rstrip('/')}/v2/updates/price/latest"
        try:
            response = await self._get(url, {"ids[]": feed.price_id, "parsed": "true"})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise OracleUnavailableError(f"Error fetching {feed.pair} price from Pyth: {e}") from e

        parsed = data.get("parsed") if isinstance(data, dict) else None
        if not parsed:
            raise OracleUnavailableError(f"No price data available from Pyth for {feed.pair}")

        # Pyth publishes integers with a shared exponent: value = price * 10^expo
        try:
            price_data = parsed[0]["price"]
            expo = int(price_data["expo"])
            price = Decimal(str(price_data["price"])).scaleb(expo)
            confidence = Decimal(str(price_data["conf"])).scaleb(expo)
            publish_time = datetime.fromtimestamp(int(price_data["publish_time"]), tz=timezone.utc)
            if not price.is_finite():
                raise ValueError(f"non-finite price {price}")
            price = price.quantize(CENTS, rounding=ROUND_HALF_UP)
            confidence = confidence.quantize(CENTS, rounding=ROUND_HALF_UP)
        except (KeyError, IndexError, TypeError, ValueError, ArithmeticError) as e:
            raise OracleUnavailableError(f"Malformed Pyth price update for {feed.pair}: {e}") from e

        # Checked after rounding: a sub-cent price would quote as 0.00
        if price <= 0:
            raise OracleUnavailableError(f"Pyth returned a non-positive price for {feed.pair}")

        return PriceQuote(
            pair=feed.pair,
            price=price,
            confidence=confidence,
            publish_time=publish_time,
            source="pyth",
        )
