"""
Generic JSON webhook notifier for Crashhook.
"""

import socket

from crashhook.core import Notifier
from crashhook.errors import NotificationFailure
from crashhook.logging_config import get_logger
from crashhook.registry import register_notifier

logger = get_logger(__name__)


@register_notifier("webhook")
class WebhookNotifier(Notifier):
    """
    Sends notifications via HTTP webhook.

    Config:
        method: HTTP method, POST or PUT (default: POST)
        headers: Optional HTTP headers
        timeout: Request timeout in seconds (default: 10)
    """

    def deliver(self, destination_url: str, message: str) -> bool:
        """Send message via webhook."""
        method = self.config.get("method", "POST").upper()

        payload = {
            "source": "crashhook",
            "host": socket.gethostname(),
            "message": message,
        }

        try:
            self._send_json(destination_url, payload, method=method)
        except (NotificationFailure, ValueError):
            logger.error("Failed to send webhook notification to %s", destination_url, exc_info=True)
            return False

        logger.info("Webhook notification sent successfully to %s", destination_url)
        return True


__all__ = ["WebhookNotifier"]
