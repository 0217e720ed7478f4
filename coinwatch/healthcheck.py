"""
Health check - sends a status summary to the notification destination.
"""

from typing import Optional

from coinwatch.clock import Clock
from coinwatch.config import AppConfig
from coinwatch.notifiers.base import Notifier, NotificationResult
from coinwatch.rules.types import StatusReport
from coinwatch.state.store import AlertStateStore


def build_status_report(
    config: AppConfig,
    clock: Clock,
    store: Optional[AlertStateStore] = None,
) -> StatusReport:
    """Summarize monitored assets, thresholds and (if available) live state."""
    schedule = config.schedule
    lines = [
        f"Assets: {len(config.assets)}",
        f"Poll interval: {schedule.poll_interval_minutes} min",
        f"Daily recap: {schedule.recap_hour:02d}:{schedule.recap_minute:02d} "
        f"({schedule.timezone or 'local time'})",
    ]

    for asset in config.assets:
        line = (
            f"{asset.symbol}: intraday ±{asset.intraday_pct}%, "
            f"daily {asset.daily_up_pct:+}% / {asset.daily_down_pct:+}%, "
            f"ATH buffer {asset.ath_buffer_pct}%"
        )
        state = store.get(asset.id) if store else None
        if state and state.last_price is not None:
            line += f", last ${state.last_price:,.2f}"
        if state and state.ath and state.ath.ath_usd is not None:
            line += f", ATH ${state.ath.ath_usd:,.2f}"
        lines.append(line)

    return StatusReport(
        triggered_at=clock.now(),
        title="✅ CoinWatch Health Check",
        lines=lines,
    )


def run_healthcheck(
    config: AppConfig,
    notifier: Notifier,
    clock: Optional[Clock] = None,
    store: Optional[AlertStateStore] = None,
) -> NotificationResult:
    """Build the status report and send it.

    Args:
        config: Loaded application config
        notifier: Destination for the report
    """
    report = build_status_report(config, clock or Clock(config.schedule.timezone), store)
    return notifier.send(report)
