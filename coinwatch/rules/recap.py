"""
Daily OHLC recap.
"""

import logging
from datetime import datetime
from typing import Optional

from coinwatch.clock import day_key
from coinwatch.config import Asset
from coinwatch.data.fetcher import PriceSource, Series
from coinwatch.state.models import RecapState
from .types import DailyRecap, RecapEntry

logger = logging.getLogger(__name__)


def summarize_series(asset: Asset, series: Series) -> Optional[RecapEntry]:
    """
    Derive open/high/low/close from a time-ordered price series.

    Returns:
        RecapEntry, or None for an empty series
    """
    prices = [price for _, price in series]
    if not prices:
        return None

    open_price = prices[0]
    close_price = prices[-1]
    change = (close_price - open_price) / open_price * 100 if open_price else 0.0

    return RecapEntry(
        asset_id=asset.id,
        symbol=asset.symbol,
        open=open_price,
        high=max(prices),
        low=min(prices),
        close=close_price,
        change_pct=change,
    )


class RecapBuilder:
    """Builds the once-per-UTC-day recap."""

    def __init__(
        self,
        assets: list[Asset],
        hour: int,
        minute: int,
        window_hours: float = 24,
    ):
        """
        Initialize recap builder.

        Args:
            assets: Assets included in the recap
            hour: Local wall-clock hour the recap becomes due
            minute: Local wall-clock minute the recap becomes due
            window_hours: Length of the price series summarised per asset
        """
        self.assets = list(assets)
        self.hour = hour
        self.minute = minute
        self.window_hours = window_hours

    def is_due(self, local_now: datetime, today_key: str, state: RecapState) -> bool:
        """True once local time is at or past the recap time and today's recap is unsent."""
        if state.last_sent_day_key == today_key:
            return False
        return (local_now.hour, local_now.minute) >= (self.hour, self.minute)

    def build(self, source: PriceSource, now: datetime) -> Optional[DailyRecap]:
        """
        Fetch series for every asset and aggregate them.

        Returns:
            DailyRecap, or None if no asset could be summarised
        """
        entries = []
        unavailable = []

        for asset in self.assets:
            series = source.get_intraday_series(asset.id, self.window_hours)
            entry = summarize_series(asset, series)
            if entry is None:
                logger.warning(f"No price series for {asset.symbol}, leaving it out of the recap")
                unavailable.append(asset.symbol)
                continue
            entries.append(entry)

        if not entries:
            return None

        return DailyRecap(
            triggered_at=now,
            day_key=day_key(now),
            entries=entries,
            unavailable=unavailable,
        )
