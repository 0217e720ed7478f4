"""
In-memory alert state records.

State lives for the lifetime of the process only; a restart resets
cooldowns, day-open baselines and daily flags.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class PriceSample:
    """One price observation for one asset."""

    asset_id: str
    price_usd: float
    change_24h_pct: Optional[float]
    observed_at: datetime


@dataclass
class DayOpenRecord:
    """Opening price of the current UTC day."""

    asset_id: str
    open_price_usd: float
    day_key: str  # YYYY-MM-DD, UTC


@dataclass
class DailyAlertFlags:
    """Daily trend alerts already fired for the current UTC day."""

    asset_id: str
    up_fired: bool = False
    down_fired: bool = False


@dataclass
class AthRecord:
    """Canonical all-time high plus the last level we announced."""

    asset_id: str
    ath_usd: Optional[float] = None
    ath_date: Optional[datetime] = None
    buffer: float = 0.0005  # fraction, not percent
    last_announced_usd: Optional[float] = None
    refreshed_at: Optional[datetime] = None


@dataclass
class IntradayCooldown:
    """Time of the last intraday alert."""

    asset_id: str
    last_alert_at: Optional[datetime] = None


@dataclass
class AssetState:
    """Composite per-asset state."""

    asset_id: str
    last_price: Optional[float] = None
    day_open: Optional[DayOpenRecord] = None
    flags: Optional[DailyAlertFlags] = None
    ath: Optional[AthRecord] = None
    cooldown: Optional[IntradayCooldown] = None

    def __post_init__(self):
        if self.flags is None:
            self.flags = DailyAlertFlags(asset_id=self.asset_id)
        if self.cooldown is None:
            self.cooldown = IntradayCooldown(asset_id=self.asset_id)

    def roll_day(self, price: float, key: str) -> None:
        """Replace the day-open record and reset the daily flags."""
        self.day_open = DayOpenRecord(
            asset_id=self.asset_id, open_price_usd=price, day_key=key
        )
        self.flags = DailyAlertFlags(asset_id=self.asset_id)


@dataclass
class RecapState:
    """Global recap bookkeeping."""

    last_sent_day_key: Optional[str] = None
    last_sent_at: Optional[datetime] = field(default=None, compare=False)
