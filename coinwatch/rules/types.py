"""
Alert event types emitted by the evaluation engine and recap builder.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class AlertSeverity(Enum):
    """Alert severity levels."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3


class AlertType(str, Enum):
    INTRADAY = "intraday"
    DAILY_TREND = "daily_trend"
    NEW_ATH = "new_ath"
    DAILY_RECAP = "daily_recap"
    STATUS = "status"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"

    @classmethod
    def of(cls, change: float) -> "Direction":
        return cls.UP if change >= 0 else cls.DOWN

    @property
    def arrow(self) -> str:
        return "📈" if self is Direction.UP else "📉"


@dataclass
class Alert:
    """Base class for every notifier-bound event."""

    triggered_at: datetime

    alert_type = AlertType.STATUS

    @property
    def severity(self) -> AlertSeverity:
        return AlertSeverity.INFO

    @property
    def message(self) -> str:
        raise NotImplementedError


@dataclass
class AssetAlert(Alert):
    """Alert about a single asset."""

    asset_id: str
    symbol: str
    current_price: float


@dataclass
class IntradayAlert(AssetAlert):
    """Fast move between two consecutive polls."""

    previous_price: float
    change_pct: float
    threshold_pct: float

    alert_type = AlertType.INTRADAY

    @property
    def direction(self) -> Direction:
        return Direction.of(self.change_pct)

    @property
    def severity(self) -> AlertSeverity:
        if abs(self.change_pct) >= 2 * self.threshold_pct:
            return AlertSeverity.CRITICAL
        return AlertSeverity.WARNING

    @property
    def message(self) -> str:
        verb = "jumped" if self.direction is Direction.UP else "dropped"
        return (
            f"{self.symbol} {verb} {self.change_pct:+.2f}% since the last check: "
            f"${self.previous_price:,.2f} → ${self.current_price:,.2f}"
        )


@dataclass
class DailyTrendAlert(AssetAlert):
    """Move versus the UTC day's opening price crossed a threshold."""

    direction: Direction
    open_price: float
    change_pct: float
    threshold_pct: float

    alert_type = AlertType.DAILY_TREND

    @property
    def severity(self) -> AlertSeverity:
        return AlertSeverity.WARNING

    @property
    def message(self) -> str:
        word = "up" if self.direction is Direction.UP else "down"
        return (
            f"{self.symbol} is {word} {self.change_pct:+.2f}% today "
            f"(open ${self.open_price:,.2f}, now ${self.current_price:,.2f}, "
            f"threshold {self.threshold_pct:+.2f}%)"
        )


@dataclass
class NewAthAlert(AssetAlert):
    """Confirmed break above the official all-time high."""

    previous_ath: float
    gain_vs_ath_pct: float
    ath_date: Optional[datetime] = None

    alert_type = AlertType.NEW_ATH

    @property
    def severity(self) -> AlertSeverity:
        return AlertSeverity.CRITICAL

    @property
    def message(self) -> str:
        text = (
            f"{self.symbol} hit a new all-time high at ${self.current_price:,.2f}, "
            f"{self.gain_vs_ath_pct:+.2f}% above the previous ATH of ${self.previous_ath:,.2f}"
        )
        if self.ath_date:
            text += f" (set {self.ath_date.strftime('%Y-%m-%d')})"
        return text


@dataclass
class RecapEntry:
    """OHLC summary for one asset."""

    asset_id: str
    symbol: str
    open: float
    high: float
    low: float
    close: float
    change_pct: float


@dataclass
class DailyRecap(Alert):
    """Once-daily OHLC recap across all assets."""

    day_key: str
    entries: list[RecapEntry] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)

    alert_type = AlertType.DAILY_RECAP

    @property
    def message(self) -> str:
        lines = [f"Daily recap for {self.day_key}"]
        for entry in self.entries:
            lines.append(
                f"{entry.symbol}: O ${entry.open:,.2f} H ${entry.high:,.2f} "
                f"L ${entry.low:,.2f} C ${entry.close:,.2f} ({entry.change_pct:+.2f}%)"
            )
        if self.unavailable:
            lines.append(f"No data: {', '.join(self.unavailable)}")
        return "\n".join(lines)


@dataclass
class StatusReport(Alert):
    """Service health summary sent on demand."""

    title: str
    lines: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "\n".join([self.title, *self.lines])
