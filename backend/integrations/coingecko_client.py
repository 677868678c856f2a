"""CoinGecko price oracle for native SOL."""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

import httpx

from config import settings
from integrations.http_retry import fetch_with_retry
from integrations.parsing_utils import parse_decimal

logger = logging.getLogger(__name__)

SOL_COIN_ID = "solana"


class CoinGeckoClient:
    """USD spot prices from the CoinGecko ``/simple/price`` endpoint.

    Failures never propagate: a missing price is reported as ``None`` (or
    left out of the returned mapping) and logged, so a degraded oracle
    only degrades valuations.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize with optional API key.

        Args:
            api_key: CoinGecko demo API key. If provided, uses the
                     x-cg-demo-api-key header for higher rate limits.
                     If None, uses the keyless public API.
            base_url: API root (defaults to settings.COINGECKO_API_URL).
            http_client: Shared AsyncClient; a short-lived one is used if omitted.
        """
        self._api_key = api_key if api_key is not None else settings.COINGECKO_API_KEY
        self._base_url = (base_url or settings.COINGECKO_API_URL).rstrip("/")
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return "coingecko"

    async def get_simple_prices(self, coin_ids: list[str]) -> dict[str, Decimal]:
        """Fetch USD prices for CoinGecko coin ids.

        Returns:
            Mapping of coin id to USD price; ids without a price are omitted.
        """
        if not coin_ids:
            return {}

        headers: dict[str, str] = {}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key

        try:
            response = await fetch_with_retry(
                "GET",
                f"{self._base_url}/simple/price",
                client=self._http_client,
                max_retries=settings.HTTP_MAX_RETRIES,
                base_delay_ms=settings.HTTP_BASE_DELAY_MS,
                timeout_ms=settings.HTTP_TIMEOUT_MS,
                label="CoinGecko price",
                params={"ids": ",".join(coin_ids), "vs_currencies": "usd"},
                headers=headers,
            )
        except (httpx.HTTPError, asyncio.TimeoutError):
            logger.warning("CoinGecko: price request failed for %s", coin_ids, exc_info=True)
            return {}

        if response.status_code >= 400:
            logger.warning(
                "CoinGecko: HTTP %d fetching prices for %s", response.status_code, coin_ids
            )
            return {}

        try:
            data = response.json()
        except ValueError:
            logger.warning("CoinGecko: non-JSON price response")
            return {}

        prices: dict[str, Decimal] = {}
        for coin_id in coin_ids:
            entry = data.get(coin_id) if isinstance(data, dict) else None
            price = parse_decimal(entry.get("usd")) if isinstance(entry, dict) else None
            if price is not None:
                prices[coin_id] = price
            else:
                logger.debug("CoinGecko: no price for %s", coin_id)
        return prices

    async def get_sol_price(self) -> Decimal | None:
        """Current SOL price in USD, or None when unavailable."""
        prices = await self.get_simple_prices([SOL_COIN_ID])
        return prices.get(SOL_COIN_ID)
