"""
Application wiring: price source -> evaluation engine -> notifier.
"""

import logging
from datetime import timedelta
from typing import Optional

from coinwatch.clock import Clock
from coinwatch.config import AppConfig
from coinwatch.data.fetcher import PriceSource, create_price_source
from coinwatch.notifiers.base import Notifier, NotifierFactory
from coinwatch.rules.engine import EvaluationEngine
from coinwatch.rules.recap import RecapBuilder
from coinwatch.rules.types import Alert, DailyRecap
from coinwatch.state.models import PriceSample
from coinwatch.state.store import AlertStateStore

logger = logging.getLogger(__name__)


class CoinWatchApp:
    """Main CoinWatch application; one instance per process."""

    def __init__(
        self,
        config: AppConfig,
        price_source: Optional[PriceSource] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        store: Optional[AlertStateStore] = None,
    ):
        """
        Initialize CoinWatch app.

        Args:
            config: Loaded application config
            price_source: Price API client (built from config if omitted)
            notifier: Delivery channel (built from config if omitted)
            clock: Time source (system clock if omitted)
            store: Alert state (fresh in-memory store if omitted)
        """
        self.config = config
        self.assets = list(config.assets)
        self.clock = clock or Clock(config.schedule.timezone)
        self.store = store or AlertStateStore(a.id for a in self.assets)

        # Initialize services
        self.price_source = price_source or create_price_source(config.price_source)
        self.notifier = notifier or NotifierFactory.create(config.notifier)
        self.engine = EvaluationEngine(
            self.assets,
            self.store,
            intraday_cooldown=timedelta(minutes=config.alerts.intraday_cooldown_minutes),
            ath_hysteresis=config.alerts.ath_hysteresis_pct / 100,
        )
        self.recap_builder = RecapBuilder(
            self.assets,
            hour=config.schedule.recap_hour,
            minute=config.schedule.recap_minute,
            window_hours=config.alerts.recap_window_hours,
        )

    def startup(self) -> None:
        """
        Verify credentials, resolve the destination and load ATH data.

        Raises:
            InvalidCredentialsError: If the price API rejects the key
        """
        self.price_source.validate_credentials()
        self.notifier.resolve_destination()
        self.run_ath_refresh()

    def run_price_check(self) -> list[Alert]:
        """Fetch spot prices, evaluate and deliver any alerts."""
        try:
            asset_ids = [asset.id for asset in self.assets]
            quotes = self.price_source.get_spot_prices(asset_ids)
            if quotes is None:
                logger.warning("Price fetch failed, skipping this cycle")
                return []

            now = self.clock.now()
            samples = {
                asset_id: PriceSample(
                    asset_id=asset_id,
                    price_usd=quote.price_usd,
                    change_24h_pct=quote.change_24h_pct,
                    observed_at=now,
                )
                for asset_id, quote in quotes.items()
            }

            alerts = self.engine.evaluate(samples)
            self._deliver(alerts)
            return alerts

        except Exception as e:
            logger.exception(f"Error during price check: {e}")
            return []

    def run_ath_refresh(self) -> int:
        """Reload canonical ATH values."""
        try:
            return self.engine.refresh_ath(self.price_source, now=self.clock.now())
        except Exception as e:
            logger.exception(f"Error during ATH refresh: {e}")
            return 0

    def run_recap_check(self) -> Optional[DailyRecap]:
        """Send the daily recap if it is due and has not been sent today."""
        try:
            today = self.clock.today_key()
            with self.store.lock:
                due = self.recap_builder.is_due(
                    self.clock.local_now(), today, self.store.recap
                )
            if not due:
                return None

            recap = self.recap_builder.build(self.price_source, self.clock.now())
            if recap is None:
                logger.warning("No recap data available, will try again next check")
                return None

            with self.store.lock:
                # Another run may have sent it while we were fetching
                if self.store.recap.last_sent_day_key == today:
                    return None
                self.store.recap.last_sent_day_key = today
                self.store.recap.last_sent_at = recap.triggered_at

            self._deliver([recap])
            return recap

        except Exception as e:
            logger.exception(f"Error during recap check: {e}")
            return None

    def _deliver(self, alerts: list[Alert]) -> None:
        """Best-effort delivery; failures are logged, never retried."""
        for alert in alerts:
            result = self.notifier.send(alert)
            if not result.success:
                logger.error(
                    f"Failed to deliver {alert.alert_type.value} alert via "
                    f"{result.channel}: {result.error}"
                )
