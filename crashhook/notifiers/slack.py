"""
Slack incoming-webhook notifier for Crashhook.
"""

from crashhook.core import Notifier
from crashhook.errors import NotificationFailure
from crashhook.logging_config import get_logger
from crashhook.registry import register_notifier

logger = get_logger(__name__)


@register_notifier("slack")
class SlackNotifier(Notifier):
    """
    Sends notifications to Slack via an incoming webhook.

    Config:
        channel: Optional channel override
        username: Optional bot username
        timeout: Request timeout in seconds (default: 10)
    """

    def deliver(self, destination_url: str, message: str) -> bool:
        """Send message to the Slack webhook at destination_url."""
        payload = {"text": message}
        for key in ("channel", "username"):
            if self.config.get(key):
                payload[key] = self.config[key]

        try:
            self._send_json(destination_url, payload)
        except NotificationFailure:
            logger.error("Failed to send Slack notification", exc_info=True)
            return False

        logger.info("Slack notification sent: %s", message)
        return True


__all__ = ["SlackNotifier"]
