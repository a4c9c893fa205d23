"""
Console notifier for Crashhook.
"""

import sys
from typing import ClassVar

from crashhook.core import Notifier
from crashhook.logging_config import get_logger
from crashhook.registry import register_notifier

logger = get_logger(__name__)


@register_notifier("console")
class ConsoleNotifier(Notifier):
    """
    Prints notifications to stderr.

    Useful for testing a supervisord setup without a chat service. Stdout
    is the protocol stream, so nothing is ever printed there.

    Config:
        (none required)
    """

    requires_destination: ClassVar[bool] = False

    def deliver(self, destination_url: str, message: str) -> bool:
        """Print notification to stderr."""
        logger.info("Console alert for %s", destination_url or "<no destination>")

        print(f"\n{'=' * 60}", file=sys.stderr)
        print(f"CRASH: {message}", file=sys.stderr)
        print(f"{'=' * 60}\n", file=sys.stderr, flush=True)
        return True


__all__ = ["ConsoleNotifier"]
