"""
USD reference prices from the CoinGecko simple/price endpoint.

Reference prices cross-check pool-implied rates and convert the USD leg of a
path into token units. A partial answer is treated as a total failure.
"""

import asyncio
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional

import requests

from .config_schema import DEFAULT_COINGECKO_URL
from .exceptions import FeedUnavailableError
from .models import ReferencePrice
from .utils import get_logger

logger = get_logger(__name__)

SOURCE = "coingecko"
API_KEY_HEADER = "x-cg-demo-api-key"


class ReferencePriceFeed:
    """
    Fetches USD prices for asset symbols.

    Args:
        ids: Asset symbol -> CoinGecko coin id
        base_url: API root (default public v3 endpoint)
        api_key: Optional CoinGecko API key sent as a header
        timeout: HTTP timeout in seconds
    """

    def __init__(
        self,
        ids: Mapping[str, str],
        base_url: str = DEFAULT_COINGECKO_URL,
        api_key: Optional[str] = None,
        timeout: float = 10,
    ):
        self.ids = dict(ids)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings, env: Optional[Mapping[str, str]] = None):
        """Build a feed from FeedSettings, reading the API key from the environment."""
        env = os.environ if env is None else env
        api_key = env.get(settings.api_key_env) if settings.api_key_env else None
        return cls(ids=settings.ids, base_url=settings.base_url, api_key=api_key)

    def _get_json(self, params: Dict[str, str]) -> Any:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key

        response = requests.get(
            f"{self.base_url}/simple/price",
            params=params,
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def fetch_usd_prices_sync(self, symbols: Iterable[str]) -> Dict[str, Decimal]:
        """
        Blocking fetch of USD prices.

        Raises:
            FeedUnavailableError: On network or parse failure, a non-positive
                price, or any requested symbol missing from the response
        """
        symbols = sorted(set(symbols))
        unknown = [s for s in symbols if s not in self.ids]
        if unknown:
            raise FeedUnavailableError(
                f"No CoinGecko id configured for {', '.join(unknown)}",
                source=SOURCE,
                missing=unknown,
            )

        coin_ids = sorted({self.ids[s] for s in symbols})
        try:
            data = self._get_json({"ids": ",".join(coin_ids), "vs_currencies": "usd"})
        except requests.RequestException as e:
            raise FeedUnavailableError(
                f"CoinGecko request failed: {e}", source=SOURCE, missing=symbols
            ) from e
        except ValueError as e:
            raise FeedUnavailableError(
                f"CoinGecko returned invalid JSON: {e}", source=SOURCE, missing=symbols
            ) from e

        if not isinstance(data, dict):
            raise FeedUnavailableError(
                f"Unexpected CoinGecko response: {data!r}", source=SOURCE, missing=symbols
            )

        prices = {}
        missing = []
        for symbol in symbols:
            entry = data.get(self.ids[symbol])
            value = entry.get("usd") if isinstance(entry, dict) else None
            try:
                price = Decimal(str(value)) if value is not None else None
            except InvalidOperation:
                price = None
            if price is None or not price.is_finite() or price <= 0:
                missing.append(symbol)
                continue
            prices[symbol] = price

        if missing:
            raise FeedUnavailableError(
                f"CoinGecko response missing usable prices for {', '.join(missing)}",
                source=SOURCE,
                missing=missing,
            )

        logger.info(
            "Reference prices: "
            + ", ".join(f"{s}=${p}" for s, p in sorted(prices.items()))
        )
        return prices

    async def fetch_usd_prices(self, symbols: Iterable[str]) -> Dict[str, Decimal]:
        """Fetch USD prices without blocking the event loop."""
        symbols = list(symbols)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.fetch_usd_prices_sync, symbols)

    async def reference_prices(self, symbols: Iterable[str]) -> Dict[str, ReferencePrice]:
        """fetch_usd_prices() wrapped into ReferencePrice records."""
        prices = await self.fetch_usd_prices(symbols)
        return {s: ReferencePrice(symbol=s, usd_value=p) for s, p in prices.items()}
