"""
Yahoo Finance price source.

Asset ids are Yahoo tickers, e.g. "BTC-USD".
"""

import logging
import math
from datetime import timezone
from typing import Optional

import yfinance as yf

from .fetcher import AthReference, PriceSource, Series, SpotQuote, trim_series

logger = logging.getLogger(__name__)


class YahooPriceSource(PriceSource):
    """Fetches prices from Yahoo Finance via yfinance."""

    INTRADAY_INTERVAL = "5m"

    def get_spot_prices(self, asset_ids: list[str]) -> Optional[dict[str, SpotQuote]]:
        quotes = {}
        failures = 0

        for asset_id in asset_ids:
            try:
                info = yf.Ticker(asset_id).info
            except Exception as e:
                logger.error(f"Yahoo quote request failed for {asset_id}: {e}")
                failures += 1
                continue

            if not info:
                continue

            # Use regularMarketPrice if available, otherwise fall back to previousClose
            price = info.get("regularMarketPrice")
            if price is None:
                price = info.get("previousClose")

            previous_close = info.get("previousClose")
            change = None
            if isinstance(price, (int, float)) and previous_close:
                change = (price - previous_close) / previous_close * 100

            quotes[asset_id] = SpotQuote(
                asset_id=asset_id, price_usd=price, change_24h_pct=change
            )

        if asset_ids and failures == len(asset_ids):
            return None
        return quotes

    def get_ath_reference(self, asset_id: str) -> Optional[AthReference]:
        try:
            hist = yf.Ticker(asset_id).history(period="max", interval="1d")
        except Exception as e:
            logger.error(f"Yahoo history request failed for {asset_id}: {e}")
            return None

        if hist is None or hist.empty or "High" not in hist:
            logger.warning(f"No history to derive ATH for {asset_id}")
            return None

        highs = hist["High"].dropna()
        if highs.empty:
            return None

        ath_at = highs.idxmax().to_pydatetime()
        if ath_at.tzinfo is None:
            ath_at = ath_at.replace(tzinfo=timezone.utc)

        return AthReference(
            asset_id=asset_id,
            ath_usd=float(highs.max()),
            ath_date=ath_at.astimezone(timezone.utc),
        )

    def get_intraday_series(self, asset_id: str, window_hours: float) -> Series:
        days = max(1, math.ceil(window_hours / 24))
        try:
            hist = yf.Ticker(asset_id).history(
                period=f"{days}d", interval=self.INTRADAY_INTERVAL
            )
        except Exception as e:
            logger.error(f"Yahoo intraday request failed for {asset_id}: {e}")
            return []

        if hist is None or hist.empty or "Close" not in hist:
            return []

        series = []
        for index, price in hist["Close"].dropna().items():
            moment = index.to_pydatetime()
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            series.append((moment.astimezone(timezone.utc), float(price)))

        return trim_series(series, window_hours)
