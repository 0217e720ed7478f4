"""
Discord webhook notifier.
"""

import logging
from typing import Any, Optional

import requests

from coinwatch.rules.types import (
    Alert,
    AlertSeverity,
    DailyRecap,
    DailyTrendAlert,
    Direction,
    IntradayAlert,
    NewAthAlert,
    StatusReport,
)
from .base import Notifier, NotificationResult

logger = logging.getLogger(__name__)

# Discord allows at most 25 fields per embed
MAX_EMBED_FIELDS = 25


class DiscordNotifier(Notifier):
    """Sends notifications via Discord webhook."""

    # Discord embed colors
    COLOR_INFO = 0x3498DB  # Blue
    COLOR_WARNING = 0xFFA500  # Orange
    COLOR_CRITICAL = 0xFF0000  # Red
    COLOR_UP = 0x2ECC71  # Green
    COLOR_DOWN = 0xE74C3C  # Red
    COLOR_ATH = 0xF1C40F  # Gold

    def __init__(
        self,
        webhook_url: str,
        mention_on_ath: bool = True,
        username: Optional[str] = None,
    ):
        """
        Initialize Discord notifier.

        Args:
            webhook_url: Discord webhook URL (the single delivery destination)
            mention_on_ath: Whether to @here on new all-time highs
            username: Optional display name override for the webhook
        """
        self.webhook_url = webhook_url
        self.mention_on_ath = mention_on_ath
        self.username = username
        self.channel_id: Optional[str] = None
        self._destination_missing = False

    def resolve_destination(self) -> bool:
        """Check the webhook exists and remember its channel."""
        try:
            response = requests.get(self.webhook_url, timeout=10)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not resolve Discord webhook: {e}")
            return True

        if response.status_code in (401, 403, 404):
            self._destination_missing = True
            logger.error(
                f"Discord webhook not found or not writable (HTTP {response.status_code}); "
                "notifications will be skipped"
            )
            return False

        if response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            self.channel_id = body.get("channel_id") if isinstance(body, dict) else None
            logger.info(f"Delivering notifications to Discord channel {self.channel_id}")

        return True

    def send(self, alert: Alert) -> NotificationResult:
        """Send alert to Discord."""
        if self._destination_missing:
            return NotificationResult(
                success=False,
                channel="discord",
                error="Destination not found",
            )

        try:
            payload = self._create_payload(alert)
            response = requests.post(self.webhook_url, json=payload, timeout=10)

            if response.ok:
                return NotificationResult(success=True, channel="discord")
            elif response.status_code in (401, 403, 404):
                return NotificationResult(
                    success=False,
                    channel="discord",
                    error=f"Destination not found or not writable (HTTP {response.status_code})",
                )
            elif response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "?")
                return NotificationResult(
                    success=False,
                    channel="discord",
                    error=f"Rate limited (HTTP 429), retry after {retry_after}s",
                )
            else:
                return NotificationResult(
                    success=False,
                    channel="discord",
                    error=f"HTTP {response.status_code}: {response.text}",
                )

        except requests.exceptions.ConnectionError as e:
            return NotificationResult(
                success=False,
                channel="discord",
                error=f"Connection error: {str(e)}",
            )
        except Exception as e:
            return NotificationResult(
                success=False,
                channel="discord",
                error=str(e),
            )

    def _create_payload(self, alert: Alert) -> dict[str, Any]:
        """Create Discord webhook payload."""
        payload: dict[str, Any] = {
            "embeds": [self._create_embed(alert)],
        }

        if self.username:
            payload["username"] = self.username

        # Add @here mention for new all-time highs
        if self.mention_on_ath and isinstance(alert, NewAthAlert):
            payload["content"] = "@here"

        return payload

    def _create_embed(self, alert: Alert) -> dict[str, Any]:
        """Create Discord embed for alert."""
        embed: dict[str, Any] = {
            "title": self._get_title(alert),
            "description": alert.message,
            "color": self._get_color(alert),
            "fields": self._get_fields(alert)[:MAX_EMBED_FIELDS],
            "timestamp": alert.triggered_at.isoformat(),
        }

        if isinstance(alert, DailyRecap) and alert.unavailable:
            embed["footer"] = {"text": f"No data: {', '.join(alert.unavailable)}"}

        return embed

    def _get_fields(self, alert: Alert) -> list[dict[str, Any]]:
        """Build per-type embed fields."""
        if isinstance(alert, IntradayAlert):
            return [
                _field("Price", f"${alert.current_price:,.2f}"),
                _field("Change", f"{alert.change_pct:+.2f}%"),
                _field("Previous", f"${alert.previous_price:,.2f}"),
            ]

        if isinstance(alert, DailyTrendAlert):
            return [
                _field("Price", f"${alert.current_price:,.2f}"),
                _field("Since Open", f"{alert.change_pct:+.2f}%"),
                _field("Open (UTC)", f"${alert.open_price:,.2f}"),
            ]

        if isinstance(alert, NewAthAlert):
            fields = [
                _field("Price", f"${alert.current_price:,.2f}"),
                _field("Previous ATH", f"${alert.previous_ath:,.2f}"),
                _field("Above ATH", f"{alert.gain_vs_ath_pct:+.2f}%"),
            ]
            if alert.ath_date:
                fields.append(_field("ATH Date", alert.ath_date.strftime("%Y-%m-%d")))
            return fields

        if isinstance(alert, DailyRecap):
            return [
                _field(
                    entry.symbol,
                    f"O ${entry.open:,.2f}\nH ${entry.high:,.2f}\n"
                    f"L ${entry.low:,.2f}\nC ${entry.close:,.2f}\n"
                    f"{entry.change_pct:+.2f}%",
                )
                for entry in alert.entries
            ]

        return []

    def _get_color(self, alert: Alert) -> int:
        """Get embed color based on alert type and severity."""
        if isinstance(alert, NewAthAlert):
            return self.COLOR_ATH
        if isinstance(alert, (IntradayAlert, DailyTrendAlert)):
            return self.COLOR_UP if alert.direction is Direction.UP else self.COLOR_DOWN
        if alert.severity == AlertSeverity.CRITICAL:
            return self.COLOR_CRITICAL
        elif alert.severity == AlertSeverity.WARNING:
            return self.COLOR_WARNING
        else:
            return self.COLOR_INFO

    def _get_title(self, alert: Alert) -> str:
        """Get embed title based on alert."""
        if isinstance(alert, IntradayAlert):
            return f"{alert.direction.arrow} {alert.symbol} Intraday Move"
        if isinstance(alert, DailyTrendAlert):
            return f"{alert.direction.arrow} {alert.symbol} Daily Trend"
        if isinstance(alert, NewAthAlert):
            return f"🚀 {alert.symbol} New All-Time High"
        if isinstance(alert, DailyRecap):
            return f"📊 Daily Recap {alert.day_key}"
        if isinstance(alert, StatusReport):
            return alert.title
        return "ℹ️ Alert"


def _field(name: str, value: str, inline: bool = True) -> dict[str, Any]:
    return {"name": name, "value": value, "inline": inline}
