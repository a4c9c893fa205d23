"""
Exception hierarchy for Crashhook.

Only ChannelClosed ends the listener. Frame errors are contained within the
cycle that produced them, and notification failures never reach the
protocol stream.
"""


class CrashhookError(Exception):
    """Base class for all Crashhook errors."""


class ChannelClosed(CrashhookError):
    """The supervisor side of the event channel went away."""


class MalformedFrame(CrashhookError):
    """A protocol frame could not be decoded."""


class MalformedHeader(MalformedFrame):
    """Header line is missing a required key or carries a bad length."""


class MalformedPayload(MalformedFrame):
    """Event payload is not a sequence of key:value tokens."""


class NotificationFailure(CrashhookError):
    """The chat endpoint could not be reached or rejected the message."""
