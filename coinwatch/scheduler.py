"""
Periodic jobs on an APScheduler background scheduler.

Three independent jobs share one CoinWatchApp: price check, ATH refresh and
the minute-granularity recap check. Each job is limited to one running
instance, and missed runs are coalesced into one.
"""

import logging
import signal
import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coinwatch.app import CoinWatchApp
from coinwatch.config import ScheduleConfig

logger = logging.getLogger(__name__)

PRICE_CHECK_JOB = "price_check"
ATH_REFRESH_JOB = "ath_refresh"
RECAP_CHECK_JOB = "recap_check"


def build_scheduler(
    app: CoinWatchApp,
    schedule: ScheduleConfig,
    scheduler: Optional[BackgroundScheduler] = None,
    run_price_check_now: bool = True,
) -> BackgroundScheduler:
    """
    Register the three periodic jobs.

    Args:
        app: Application whose job methods are scheduled
        schedule: Schedule configuration
        scheduler: Scheduler to use (a new BackgroundScheduler if omitted)
        run_price_check_now: Fire the first price check immediately on start

    Returns:
        The (not yet started) scheduler
    """
    scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
    job_defaults = {"max_instances": 1, "coalesce": True, "misfire_grace_time": 60}

    scheduler.add_job(
        app.run_price_check,
        IntervalTrigger(minutes=schedule.poll_interval_minutes),
        id=PRICE_CHECK_JOB,
        name="Price check",
        next_run_time=datetime.now(timezone.utc) if run_price_check_now else None,
        **job_defaults,
    )
    scheduler.add_job(
        app.run_ath_refresh,
        IntervalTrigger(hours=schedule.ath_refresh_hours),
        id=ATH_REFRESH_JOB,
        name="ATH refresh",
        **job_defaults,
    )
    scheduler.add_job(
        app.run_recap_check,
        IntervalTrigger(minutes=1),
        id=RECAP_CHECK_JOB,
        name="Recap check",
        **job_defaults,
    )

    return scheduler


def run_forever(app: CoinWatchApp, schedule: ScheduleConfig) -> None:
    """Start the scheduler and block until SIGINT or SIGTERM."""
    scheduler = build_scheduler(app, schedule)
    stop = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler.start()
    logger.info(
        f"Scheduler started: price check every {schedule.poll_interval_minutes} min, "
        f"ATH refresh every {schedule.ath_refresh_hours} h, "
        f"recap at {schedule.recap_hour:02d}:{schedule.recap_minute:02d}"
    )

    try:
        while not stop.is_set():
            stop.wait(1)
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
