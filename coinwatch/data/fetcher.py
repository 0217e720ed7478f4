"""
Price source interface and CoinGecko implementation.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests

from coinwatch.config import PriceSourceConfig

logger = logging.getLogger(__name__)

Series = list[tuple[datetime, float]]


class InvalidCredentialsError(Exception):
    """Raised when the price API rejects the configured key."""

    pass


@dataclass
class SpotQuote:
    """Current spot price as returned by the price API (not yet validated)."""

    asset_id: str
    price_usd: Any
    change_24h_pct: Optional[float] = None


@dataclass
class AthReference:
    """Canonical all-time high."""

    asset_id: str
    ath_usd: float
    ath_date: Optional[datetime] = None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or epoch milliseconds) into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def trim_series(series: Series, window_hours: float) -> Series:
    """Keep points within window_hours of the newest point, ordered by time."""
    ordered = sorted(series, key=lambda point: point[0])
    if not ordered:
        return []
    cutoff = ordered[-1][0] - timedelta(hours=window_hours)
    return [point for point in ordered if point[0] >= cutoff]


class PriceSource(ABC):
    """Abstract price API."""

    @abstractmethod
    def get_spot_prices(self, asset_ids: list[str]) -> Optional[dict[str, SpotQuote]]:
        """
        Fetch current spot price and 24h change.

        Args:
            asset_ids: Asset identifiers

        Returns:
            Mapping asset id -> SpotQuote, or None on transport/HTTP failure.
            Assets the API did not return are absent from the mapping.
        """
        pass

    @abstractmethod
    def get_ath_reference(self, asset_id: str) -> Optional[AthReference]:
        """Fetch canonical all-time high, or None if unavailable."""
        pass

    @abstractmethod
    def get_intraday_series(self, asset_id: str, window_hours: float) -> Series:
        """Fetch a time-ordered (timestamp, price) series; empty on failure."""
        pass

    def validate_credentials(self) -> None:
        """Raise InvalidCredentialsError if the API rejects the credentials."""
        return None


class CoinGeckoPriceSource(PriceSource):
    """Fetches prices from the CoinGecko API."""

    DEMO_URL = "https://api.coingecko.com/api/v3"
    PRO_URL = "https://pro-api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str = "",
        api_tier: str = "demo",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize CoinGecko client.

        Args:
            api_key: Static API key ("" for the keyless public tier)
            api_tier: "demo" or "pro"; selects base URL and key header
            timeout: Per-request timeout in seconds
            session: Optional requests session
        """
        self.api_key = api_key
        self.api_tier = api_tier
        self.timeout = timeout
        self.session = session or requests.Session()
        self.base_url = self.PRO_URL if api_tier == "pro" else self.DEMO_URL

    @classmethod
    def from_config(cls, config: PriceSourceConfig) -> "CoinGeckoPriceSource":
        return cls(
            api_key=config.api_key,
            api_tier=config.api_tier,
            timeout=config.timeout_seconds,
        )

    @property
    def headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            header = "x-cg-pro-api-key" if self.api_tier == "pro" else "x-cg-demo-api-key"
            headers[header] = self.api_key
        return headers

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET a JSON document. Raises requests.RequestException on failure."""
        response = self.session.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def validate_credentials(self) -> None:
        if not self.api_key:
            logger.warning("No CoinGecko API key configured, using public rate limits")
            return

        try:
            response = self.session.get(
                f"{self.base_url}/ping", headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Could not verify CoinGecko credentials: {e}")
            return

        if response.status_code in (401, 403):
            raise InvalidCredentialsError(
                f"CoinGecko rejected the API key (HTTP {response.status_code})"
            )
        if not response.ok:
            logger.warning(f"CoinGecko ping returned HTTP {response.status_code}")

    def get_spot_prices(self, asset_ids: list[str]) -> Optional[dict[str, SpotQuote]]:
        if not asset_ids:
            return {}

        try:
            data = self._get(
                "/simple/price",
                params={
                    "ids": ",".join(asset_ids),
                    "vs_currencies": "usd",
                    "include_24hr_change": "true",
                },
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Spot price request failed: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Unexpected spot price payload: {data!r}")
            return None

        quotes = {}
        for asset_id in asset_ids:
            entry = data.get(asset_id)
            if not isinstance(entry, dict):
                continue
            quotes[asset_id] = SpotQuote(
                asset_id=asset_id,
                price_usd=entry.get("usd"),
                change_24h_pct=entry.get("usd_24h_change"),
            )
        return quotes

    def get_ath_reference(self, asset_id: str) -> Optional[AthReference]:
        try:
            data = self._get(
                f"/coins/{asset_id}",
                params={
                    "localization": "false",
                    "tickers": "false",
                    "market_data": "true",
                    "community_data": "false",
                    "developer_data": "false",
                    "sparkline": "false",
                },
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"ATH request failed for {asset_id}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Unexpected ATH payload for {asset_id}: {data!r}")
            return None

        market_data = data.get("market_data") or {}
        ath = market_data.get("ath") if isinstance(market_data, dict) else None
        ath_usd = ath.get("usd") if isinstance(ath, dict) else None
        if isinstance(ath_usd, bool) or not isinstance(ath_usd, (int, float)):
            logger.warning(f"No ATH value for {asset_id}")
            return None

        ath_date = market_data.get("ath_date")
        return AthReference(
            asset_id=asset_id,
            ath_usd=float(ath_usd),
            ath_date=parse_timestamp(ath_date.get("usd")) if isinstance(ath_date, dict) else None,
        )

    def get_intraday_series(self, asset_id: str, window_hours: float) -> Series:
        days = max(1, math.ceil(window_hours / 24))
        try:
            data = self._get(
                f"/coins/{asset_id}/market_chart",
                params={"vs_currency": "usd", "days": days},
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Price series request failed for {asset_id}: {e}")
            return []

        if not isinstance(data, dict):
            logger.error(f"Unexpected price series payload for {asset_id}: {data!r}")
            return []

        series = []
        for point in data.get("prices") or []:
            if not isinstance(point, (list, tuple)) or len(point) < 2:
                continue
            timestamp, price = parse_timestamp(point[0]), point[1]
            if timestamp is None or isinstance(price, bool) or not isinstance(price, (int, float)):
                continue
            series.append((timestamp, float(price)))

        return trim_series(series, window_hours)


def create_price_source(config: PriceSourceConfig) -> PriceSource:
    """
    Create a price source from configuration.

    Raises:
        ValueError: If provider is unknown
    """
    if config.provider == "coingecko":
        return CoinGeckoPriceSource.from_config(config)

    elif config.provider == "yahoo_finance":
        from .yahoo import YahooPriceSource

        return YahooPriceSource()

    else:
        raise ValueError(f"Unknown price provider: {config.provider}")
