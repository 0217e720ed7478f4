"""
Alert evaluation engine.

Turns one price sample per asset into day-open maintenance, intraday,
daily-trend and all-time-high alerts. All state lives in the
AlertStateStore passed in by the caller.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from coinwatch.clock import day_key
from coinwatch.config import Asset
from coinwatch.data.fetcher import PriceSource
from coinwatch.state.models import AssetState, AthRecord, PriceSample
from coinwatch.state.store import AlertStateStore
from .types import (
    Alert,
    AlertSeverity,
    AssetAlert,
    DailyTrendAlert,
    Direction,
    IntradayAlert,
    NewAthAlert,
)

# Re-export for convenience
__all__ = ["EvaluationEngine", "Alert", "AlertSeverity", "is_valid_price"]

logger = logging.getLogger(__name__)

DEFAULT_INTRADAY_COOLDOWN = timedelta(minutes=15)
DEFAULT_ATH_HYSTERESIS = 0.003


def is_valid_price(value: Any) -> bool:
    """True for finite, positive real numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def pct_change(current: float, reference: float) -> float:
    return (current - reference) / reference * 100


class EvaluationEngine:
    """Evaluates price samples against per-asset thresholds."""

    def __init__(
        self,
        assets: list[Asset],
        store: AlertStateStore,
        intraday_cooldown: timedelta = DEFAULT_INTRADAY_COOLDOWN,
        ath_hysteresis: float = DEFAULT_ATH_HYSTERESIS,
    ):
        """
        Initialize engine.

        Args:
            assets: Monitored assets, evaluated in this order
            store: State store owned by this engine
            intraday_cooldown: Minimum spacing between intraday alerts per asset
            ath_hysteresis: Fraction above the last announced ATH required
                before announcing again (0.003 = 0.3%)
        """
        self.assets = list(assets)
        self.store = store
        self.intraday_cooldown = intraday_cooldown
        self.ath_hysteresis = ath_hysteresis

    def evaluate(self, samples: dict[str, PriceSample]) -> list[Alert]:
        """
        Run one evaluation cycle.

        Args:
            samples: Mapping of asset id to the latest sample

        Returns:
            Alerts in asset order, then intraday, daily, ATH per asset
        """
        alerts: list[Alert] = []

        for asset in self.assets:
            sample = samples.get(asset.id)
            if sample is None:
                logger.warning(f"No price sample for {asset.symbol}, skipping")
                continue
            if not is_valid_price(sample.price_usd):
                logger.warning(
                    f"Invalid price for {asset.symbol}: {sample.price_usd!r}, skipping"
                )
                continue

            with self.store.lock:
                alerts.extend(self.evaluate_asset(asset, sample))

        return alerts

    def evaluate_asset(self, asset: Asset, sample: PriceSample) -> list[AssetAlert]:
        """Evaluate a single validated sample. Caller holds the store lock."""
        state = self.store.get_or_create(asset.id)
        price = float(sample.price_usd)
        now = sample.observed_at

        self._maintain_day_open(state, price, now)

        alerts: list[AssetAlert] = []

        intraday = self._evaluate_intraday(asset, state, price, now)
        if intraday:
            alerts.append(intraday)

        alerts.extend(self._evaluate_daily(asset, state, price, now))

        ath_alert = self._evaluate_ath(asset, state.ath, price, now)
        if ath_alert:
            alerts.append(ath_alert)

        for alert in alerts:
            logger.info(f"Alert {alert.alert_type.value}: {alert.message}")

        return alerts

    def _maintain_day_open(self, state: AssetState, price: float, now: datetime) -> None:
        key = day_key(now)
        if state.day_open is None or state.day_open.day_key != key:
            logger.debug(f"New day {key} for {state.asset_id}, open ${price:,.2f}")
            state.roll_day(price, key)

    def _evaluate_intraday(
        self, asset: Asset, state: AssetState, price: float, now: datetime
    ) -> Optional[IntradayAlert]:
        prior = state.last_price
        state.last_price = price

        # First observation only seeds the prior price
        if prior is None:
            return None

        diff_pct = pct_change(price, prior)
        if abs(diff_pct) < asset.intraday_pct:
            return None

        last_alert_at = state.cooldown.last_alert_at
        if last_alert_at is not None and now - last_alert_at < self.intraday_cooldown:
            logger.debug(
                f"{asset.symbol} intraday move {diff_pct:+.2f}% suppressed by cooldown"
            )
            return None

        state.cooldown.last_alert_at = now
        return IntradayAlert(
            triggered_at=now,
            asset_id=asset.id,
            symbol=asset.symbol,
            current_price=price,
            previous_price=prior,
            change_pct=diff_pct,
            threshold_pct=asset.intraday_pct,
        )

    def _evaluate_daily(
        self, asset: Asset, state: AssetState, price: float, now: datetime
    ) -> list[DailyTrendAlert]:
        open_price = state.day_open.open_price_usd
        change = pct_change(price, open_price)
        flags = state.flags
        alerts = []

        if not flags.up_fired and change >= asset.daily_up_pct:
            flags.up_fired = True
            alerts.append(
                self._daily_alert(asset, Direction.UP, price, open_price, change, now)
            )

        if not flags.down_fired and change <= asset.daily_down_pct:
            flags.down_fired = True
            alerts.append(
                self._daily_alert(asset, Direction.DOWN, price, open_price, change, now)
            )

        return alerts

    def _daily_alert(
        self,
        asset: Asset,
        direction: Direction,
        price: float,
        open_price: float,
        change: float,
        now: datetime,
    ) -> DailyTrendAlert:
        threshold = asset.daily_up_pct if direction is Direction.UP else asset.daily_down_pct
        return DailyTrendAlert(
            triggered_at=now,
            asset_id=asset.id,
            symbol=asset.symbol,
            current_price=price,
            direction=direction,
            open_price=open_price,
            change_pct=change,
            threshold_pct=threshold,
        )

    def _evaluate_ath(
        self, asset: Asset, record: Optional[AthRecord], price: float, now: datetime
    ) -> Optional[NewAthAlert]:
        # ATH data not loaded yet is a normal transient state
        if record is None or record.ath_usd is None:
            return None

        threshold = record.ath_usd * (1 + record.buffer)
        if price < threshold:
            return None

        if (
            record.last_announced_usd is not None
            and price < record.last_announced_usd * (1 + self.ath_hysteresis)
        ):
            return None

        record.last_announced_usd = price
        return NewAthAlert(
            triggered_at=now,
            asset_id=asset.id,
            symbol=asset.symbol,
            current_price=price,
            previous_ath=record.ath_usd,
            gain_vs_ath_pct=pct_change(price, record.ath_usd),
            ath_date=record.ath_date,
        )

    def refresh_ath(self, source: PriceSource, now: Optional[datetime] = None) -> int:
        """
        Reload canonical ATH values for every asset.

        The last announced level is carried forward so a routine refresh
        never causes a level to be announced twice. Network calls happen
        outside the store lock.

        Returns:
            Number of assets whose ATH record was updated
        """
        refreshed = 0

        for asset in self.assets:
            reference = source.get_ath_reference(asset.id)
            if reference is None:
                logger.warning(f"ATH unavailable for {asset.symbol}, keeping previous record")
                continue

            with self.store.lock:
                state = self.store.get_or_create(asset.id)
                record = state.ath or AthRecord(asset_id=asset.id)
                record.ath_usd = reference.ath_usd
                record.ath_date = reference.ath_date
                record.buffer = asset.ath_buffer
                record.refreshed_at = now
                if record.last_announced_usd is None:
                    record.last_announced_usd = reference.ath_usd
                state.ath = record

            refreshed += 1
            logger.info(f"ATH for {asset.symbol}: ${reference.ath_usd:,.2f}")

        return refreshed
