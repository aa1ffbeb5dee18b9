import requests
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional
from cryptoagent.config.settings import COINGECKO_API_URL, PRICE_TIMEOUT
from cryptoagent.models.errors import PriceNotFound, TransportFailure

logger = logging.getLogger(__name__)


@dataclass
class MarketSnapshot:
    markets: List[Dict] = field(default_factory=list)
    top_gainers: List[Dict] = field(default_factory=list)
    price_history: List[List[float]] = field(default_factory=list)


class CoinGeckoService:
    def __init__(self, base_url: str = COINGECKO_API_URL, timeout: Optional[float] = PRICE_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: Dict) -> object:
        try:
            response = requests.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error calling CoinGecko {path}: {e}")
            raise TransportFailure("NETWORK_ERROR", str(e))
        if response.status_code != 200:
            logger.error(f"CoinGecko {path} returned {response.status_code}: {response.text}")
            raise TransportFailure("API_ERROR", f"CoinGecko returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse CoinGecko response as JSON: {response.text}")
            raise TransportFailure("API_ERROR", str(e))

    def get_spot_price(self, canonical_id: str) -> float:
        """Get current USD price of a cryptocurrency by its CoinGecko id"""
        data = self._get("/simple/price", {"ids": canonical_id, "vs_currencies": "usd"})
        quote = data.get(canonical_id) if isinstance(data, dict) else None
        price = quote.get("usd") if isinstance(quote, dict) else None
        if price is None:
            logger.info(f"No USD price for {canonical_id}")
            raise PriceNotFound("PRICE_NOT_FOUND", f"Price not found for {canonical_id}")
        return float(price)

    def get_markets(self, order: str = "market_cap_desc", per_page: int = 10) -> List[Dict]:
        """Get the first page of coins ranked by ``order``"""
        return self._get("/coins/markets", {
            "vs_currency": "usd",
            "order": order,
            "per_page": per_page,
            "page": 1,
        })

    def get_top_gainers(self, per_page: int = 5) -> List[Dict]:
        return self.get_markets(order="percent_change_24h", per_page=per_page)

    def get_price_history(self, canonical_id: str = "bitcoin", days: int = 7) -> List[List[float]]:
        """Get ``[timestamp_ms, price]`` pairs for the last ``days`` days"""
        data = self._get(f"/coins/{canonical_id}/market_chart", {"vs_currency": "usd", "days": str(days)})
        return data.get("prices", []) if isinstance(data, dict) else []

    def get_market_snapshot(self, history_id: str = "bitcoin") -> MarketSnapshot:
        """Collect the dashboard data. Parts that fail are left empty."""
        snapshot = MarketSnapshot()
        try:
            snapshot.markets = self.get_markets()
        except TransportFailure as e:
            logger.error(f"Error fetching crypto data: {e}")
        try:
            snapshot.top_gainers = self.get_top_gainers()
        except TransportFailure as e:
            logger.error(f"Error fetching top gainers: {e}")
        try:
            snapshot.price_history = self.get_price_history(history_id)
        except TransportFailure as e:
            logger.error(f"Error fetching price history: {e}")
        return snapshot


def price_series(history: List[List[float]]) -> List[Dict]:
    """Turn market_chart pairs into dated points for a line chart"""
    return [
        {
            "date": datetime.fromtimestamp(ts / 1000, tz=timezone.utc).strftime("%Y-%m-%d"),
            "price": price,
        }
        for ts, price in history
    ]


def format_usd(price: float) -> str:
    if price >= 1:
        return f"{price:,.2f}"
    return f"{price:.8f}".rstrip("0").rstrip(".")
