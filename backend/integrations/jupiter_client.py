"""Jupiter price oracle for SPL tokens."""

import asyncio
import logging
from decimal import Decimal

import httpx

from config import settings
from integrations.http_retry import fetch_with_retry
from integrations.parsing_utils import parse_decimal

logger = logging.getLogger(__name__)


class JupiterPriceClient:
    """USD prices for SPL token mints from the Jupiter price API.

    Like the CoinGecko client, this never raises on oracle failure; the
    affected tokens simply have no price.
    """

    def __init__(self, price_url: str | None = None, http_client: httpx.AsyncClient | None = None):
        self._price_url = price_url or settings.JUPITER_PRICE_URL
        self._http_client = http_client

    async def get_token_prices(self, mints: list[str]) -> dict[str, Decimal]:
        """Fetch prices for the given mint addresses.

        Returns:
            Mapping of mint to USD price; unpriced mints are omitted.
        """
        if not mints:
            return {}

        try:
            response = await fetch_with_retry(
                "GET",
                self._price_url,
                client=self._http_client,
                max_retries=settings.HTTP_MAX_RETRIES,
                base_delay_ms=settings.HTTP_BASE_DELAY_MS,
                timeout_ms=settings.HTTP_TIMEOUT_MS,
                label="Jupiter price",
                params={"ids": ",".join(mints)},
            )
        except (httpx.HTTPError, asyncio.TimeoutError):
            logger.warning("Jupiter: price request failed for %d mints", len(mints), exc_info=True)
            return {}

        if response.status_code >= 400:
            logger.warning("Jupiter: HTTP %d fetching token prices", response.status_code)
            return {}

        try:
            data = response.json().get("data") or {}
        except (ValueError, AttributeError):
            logger.warning("Jupiter: malformed price response")
            return {}

        if not isinstance(data, dict):
            logger.warning("Jupiter: malformed price response")
            return {}

        prices: dict[str, Decimal] = {}
        for mint, entry in data.items():
            price = parse_decimal(entry.get("price")) if isinstance(entry, dict) else None
            if price:
                prices[mint] = price
        return prices
