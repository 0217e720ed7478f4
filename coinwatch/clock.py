"""
Clock abstraction and UTC day keys.
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def day_key(moment: datetime) -> str:
    """Return the UTC calendar date of a moment as YYYY-MM-DD."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


class Clock:
    """Wall clock used by the scheduler jobs."""

    def __init__(self, tz_name: Optional[str] = None):
        """
        Initialize clock.

        Args:
            tz_name: IANA timezone for local wall-clock checks, or None/"" to
                use the process timezone
        """
        self.tz = ZoneInfo(tz_name) if tz_name else None

    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        return datetime.now(timezone.utc)

    def local_now(self) -> datetime:
        """Current wall-clock time in the configured (or process) timezone."""
        return self.now().astimezone(self.tz)

    def today_key(self) -> str:
        """UTC day key for the current moment."""
        return day_key(self.now())
