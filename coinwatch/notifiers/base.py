"""
Base notifier classes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from coinwatch.config import NotifierConfig
from coinwatch.rules.types import Alert


@dataclass
class NotificationResult:
    """Result of a notification attempt."""

    success: bool
    channel: str
    error: Optional[str] = None


class Notifier(ABC):
    """Abstract base class for notifiers."""

    def resolve_destination(self) -> bool:
        """
        Look up the delivery destination once at startup.

        Returns:
            True if the destination is usable
        """
        return True

    @abstractmethod
    def send(self, alert: Alert) -> NotificationResult:
        """
        Send a single alert notification.

        Args:
            alert: Alert to send

        Returns:
            NotificationResult indicating success or failure
        """
        pass

    def send_batch(self, alerts: list[Alert]) -> list[NotificationResult]:
        """
        Send multiple alerts.

        Args:
            alerts: List of alerts to send

        Returns:
            List of NotificationResult for each alert
        """
        return [self.send(alert) for alert in alerts]


class NotifierFactory:
    """Factory for creating notifier instances."""

    @staticmethod
    def create(config: NotifierConfig) -> Notifier:
        """
        Create a notifier from configuration.

        Args:
            config: Notifier configuration

        Returns:
            Appropriate Notifier instance

        Raises:
            ValueError: If notifier type is unknown
        """
        if config.type == "discord":
            from .discord import DiscordNotifier

            return DiscordNotifier(
                webhook_url=config.webhook_url,
                mention_on_ath=config.mention_on_ath,
                username=config.username,
            )

        elif config.type == "log":
            from .log import LogNotifier

            return LogNotifier()

        else:
            raise ValueError(f"Unknown notifier type: {config.type}")
