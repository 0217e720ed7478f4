"""
Notifier that writes alerts to the log (dry runs).
"""

import logging

from coinwatch.rules.types import Alert
from .base import Notifier, NotificationResult

logger = logging.getLogger(__name__)


class LogNotifier(Notifier):
    """Logs alerts instead of delivering them."""

    def __init__(self):
        self.sent: list[Alert] = []

    def send(self, alert: Alert) -> NotificationResult:
        self.sent.append(alert)
        logger.info(f"[{alert.alert_type.value}] {alert.message}")
        return NotificationResult(success=True, channel="log")
