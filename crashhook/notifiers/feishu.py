"""
Feishu (Lark) custom bot notifier for Crashhook.
"""

import requests

from crashhook.core import Notifier
from crashhook.errors import NotificationFailure
from crashhook.logging_config import get_logger
from crashhook.registry import register_notifier

logger = get_logger(__name__)


@register_notifier("feishu")
class FeishuNotifier(Notifier):
    """
    Sends a text message to a Feishu custom bot webhook.

    Feishu answers HTTP 200 even for rejected messages and reports the
    outcome in a JSON body with a "code" field (0 means success).

    Config:
        timeout: Request timeout in seconds (default: 10)
        headers: Optional extra HTTP headers
    """

    def deliver(self, destination_url: str, message: str) -> bool:
        """Send message to the Feishu bot at destination_url."""
        payload = {
            "msg_type": "text",
            "content": {"text": message},
        }

        try:
            response = self._send_json(destination_url, payload)
            self._check_reply(response)
        except NotificationFailure:
            logger.error("Failed to push message to Feishu", exc_info=True)
            return False

        logger.info("Feishu notification sent: %s", message)
        return True

    @staticmethod
    def _check_reply(response: requests.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            # Older bot endpoints reply with an empty body
            return

        if not isinstance(body, dict):
            return
        code = body.get("code", body.get("StatusCode", 0))
        if code:
            raise NotificationFailure(
                f"Feishu rejected message: code={code} msg={body.get('msg', body.get('StatusMessage'))}"
            )


__all__ = ["FeishuNotifier"]
