"""
Core interfaces for Crashhook notifiers.

The listener only knows notifiers through `deliver(destination_url,
message) -> bool`; any object with that method can stand in for one.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Protocol

import requests

from crashhook.errors import NotificationFailure

DEFAULT_TIMEOUT = 10.0


class Deliverer(Protocol):
    """Capability the listener needs from a notifier."""

    def deliver(self, destination_url: str, message: str) -> bool:
        ...


class Notifier(ABC):
    """
    Base class for all notifiers.

    Notifiers push a crash message to a chat service.

    The timeout config is handed to requests, which applies it to the
    connect and to each socket read, not to the request as a whole. An
    endpoint that keeps trickling bytes can hold deliver() past it, so
    EventListener also caps the whole call with its delivery_deadline.
    """

    # False for notifiers that work without a destination URL
    requires_destination: ClassVar[bool] = True

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the notifier with configuration.

        Args:
            config: Type-specific configuration dictionary. Common keys are
                timeout (seconds, default 10) and headers.
        """
        self.config = config

    @property
    def timeout(self) -> float:
        return float(self.config.get("timeout", DEFAULT_TIMEOUT))

    @abstractmethod
    def deliver(self, destination_url: str, message: str) -> bool:
        """
        Send a message to destination_url.

        Args:
            destination_url: Webhook URL of the chat service
            message: Plain text message body

        Returns:
            True if the message was delivered, False otherwise
        """
        raise NotImplementedError

    def _send_json(
        self,
        url: str,
        payload: dict[str, Any],
        method: str = "POST"
    ) -> requests.Response:
        """
        Send payload as JSON with the configured headers and timeout.

        Raises:
            NotificationFailure: On transport errors or a non-2xx status
        """
        headers = self.config.get("headers") or {}

        try:
            if method == "POST":
                response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            elif method == "PUT":
                response = requests.put(url, json=payload, headers=headers, timeout=self.timeout)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationFailure(f"{method} {url} failed: {e}") from e

        return response
