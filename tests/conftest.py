"""
Pytest configuration and fixtures for Crashhook tests.
"""

import io
import logging

import pytest

from crashhook.channel import EventChannel


def render_frame(payload: str, eventname: str = "PROCESS_STATE_EXITED", serial: int = 1) -> bytes:
    """Render one supervisord event frame with a correct len header."""
    body = payload.encode("utf-8")
    header = (
        f"ver:3.0 server:supervisor serial:{serial} pool:crashhook "
        f"poolserial:{serial} eventname:{eventname} len:{len(body)}\n"
    )
    return header.encode("utf-8") + body


class RecordingNotifier:
    """Fake notifier that records deliveries instead of doing HTTP."""

    requires_destination = True

    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def deliver(self, destination_url: str, message: str) -> bool:
        self.calls.append((destination_url, message))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def output() -> io.BytesIO:
    """Stream standing in for the listener's stdout."""
    return io.BytesIO()


@pytest.fixture
def channel_for(output: io.BytesIO):
    """Build an EventChannel reading the given bytes and writing to output."""
    def factory(data: bytes) -> EventChannel:
        return EventChannel(io.BytesIO(data), output)
    return factory


@pytest.fixture
def make_frame():
    """Render supervisord event frames with a correct len header."""
    return render_frame


@pytest.fixture
def recording_notifier():
    """Factory for fake notifiers with a chosen outcome."""
    return RecordingNotifier


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() so caplog sees crashhook records in every test."""
    yield
    package_logger = logging.getLogger("crashhook")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
