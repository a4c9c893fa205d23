"""
supervisord eventlistener protocol loop.

The conversation with supervisord is a fixed cycle:

    AWAITING_READY -> READING_HEADER -> READING_PAYLOAD -> ACKNOWLEDGING -> AWAITING_READY

Each state has one handler that performs its I/O and returns the next
state. The cycle only ends when the channel closes.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crashhook.channel import EventChannel
from crashhook.classifier import Decision, TransitionClassifier, WatchSet
from crashhook.core import Deliverer
from crashhook.errors import ChannelClosed, MalformedFrame
from crashhook.logging_config import get_logger
from crashhook.parser import Frame, decode_event, read_frame

logger = get_logger(__name__)

READY_TOKEN = "READY"
RESULT_OK = "OK"
RESULT_FAIL = "FAIL"

# Total time the listener waits for one notification before moving on
DEFAULT_DELIVERY_DEADLINE = 30.0


class ListenerState(Enum):
    """Protocol state of the listener."""
    AWAITING_READY = "awaiting_ready"
    READING_HEADER = "reading_header"
    READING_PAYLOAD = "reading_payload"
    ACKNOWLEDGING = "acknowledging"


def result_frame(body: str) -> str:
    """Render a RESULT frame, e.g. "RESULT 2\\nOK"."""
    return f"RESULT {len(body.encode('utf-8'))}\n{body}"


@dataclass
class Cycle:
    """Per-event scratch data, reset every time the listener signals READY."""
    header_line: str | None = None
    frame: Frame | None = None
    decision: Decision | None = None


class EventListener:
    """
    Runs the eventlistener protocol over an EventChannel.

    Every event is acknowledged with OK whatever the classification or
    notification outcome. Notification happens after the acknowledgement
    and its failures are logged, never propagated.
    """

    def __init__(
        self,
        channel: EventChannel,
        watch_set: WatchSet,
        notifier: Deliverer | None = None,
        destination_url: str | None = None,
        delivery_deadline: float = DEFAULT_DELIVERY_DEADLINE,
    ):
        """
        Initialize the listener.

        Args:
            channel: Channel connected to supervisord
            watch_set: Processes to report on (empty means all)
            notifier: Delivers crash messages; None disables delivery
            destination_url: Chat webhook URL passed to the notifier
            delivery_deadline: Seconds to wait for a delivery before giving up
                on it and reading the next event
        """
        self.channel = channel
        self.classifier = TransitionClassifier(watch_set)
        self.notifier = notifier
        self.destination_url = destination_url
        self.delivery_deadline = delivery_deadline
        self.state = ListenerState.AWAITING_READY
        self.cycle = Cycle()
        self.events_seen = 0
        self.notifications_sent = 0

        self._handlers = {
            ListenerState.AWAITING_READY: self._signal_ready,
            ListenerState.READING_HEADER: self._read_header,
            ListenerState.READING_PAYLOAD: self._read_payload,
            ListenerState.ACKNOWLEDGING: self._acknowledge,
        }

    def step(self) -> ListenerState:
        """
        Run the current state's action and move to the next state.

        Returns:
            The new state

        Raises:
            ChannelClosed: If supervisord closed the channel
        """
        next_state = self._handlers[self.state]()
        logger.debug("Listener state %s -> %s", self.state.value, next_state.value)
        self.state = next_state
        return next_state

    def run(self) -> None:
        """Process events until supervisord closes the channel."""
        logger.info(
            "Listening for process state events (watching %s)",
            "all processes" if self.classifier.watch_set.watch_all
            else ", ".join(sorted(str(t) for t in self.classifier.watch_set.targets))
        )
        try:
            while True:
                self.step()
        except ChannelClosed as e:
            logger.info(
                "Event channel closed after %s event(s), %s notification(s): %s",
                self.events_seen,
                self.notifications_sent,
                e
            )

    # State handlers

    def _signal_ready(self) -> ListenerState:
        self.cycle = Cycle()
        self.channel.write_line(READY_TOKEN)
        return ListenerState.READING_HEADER

    def _read_header(self) -> ListenerState:
        self.cycle.header_line = self.channel.read_header_line()
        return ListenerState.READING_PAYLOAD

    def _read_payload(self) -> ListenerState:
        self.events_seen += 1
        try:
            self.cycle.frame = read_frame(self.cycle.header_line or "", self.channel)
            logger.debug("Event headers: %s", self.cycle.frame.headers)

            event = decode_event(self.cycle.frame)
            if event is None:
                logger.debug("Acknowledging %s without classification", self.cycle.frame.eventname)
                return ListenerState.ACKNOWLEDGING

            logger.debug("Process payload: %s", event.payload)
            self.cycle.decision = self.classifier.classify(event)
        except MalformedFrame:
            logger.warning("Ignoring malformed frame", exc_info=True)
            return ListenerState.ACKNOWLEDGING

        if not self.cycle.decision.should_notify:
            logger.debug("Ignoring event: %s", self.cycle.decision.message)
        return ListenerState.ACKNOWLEDGING

    def _acknowledge(self) -> ListenerState:
        self.channel.write(result_frame(RESULT_OK))

        decision = self.cycle.decision
        if decision is not None and decision.should_notify:
            self._notify(decision)
        return ListenerState.AWAITING_READY

    def _notify(self, decision: Decision) -> None:
        logger.info("Crash detected: %s", decision.message)

        if self.notifier is None:
            logger.warning("No notifier configured, message will not be pushed")
            return

        if not self.destination_url and getattr(self.notifier, "requires_destination", True):
            logger.warning(
                "No webhook specified (neither --webhook argument nor CRASHHOOK_WEBHOOK "
                "environment variable), message will not be pushed"
            )
            return

        outcome = self._deliver_with_deadline(decision.message)

        if "error" in outcome:
            logger.error(
                "Error sending notification via %s",
                self.notifier.__class__.__name__,
                exc_info=outcome["error"]
            )
        elif "delivered" not in outcome:
            logger.warning(
                "Notifier %s did not finish within %ss, moving on: %s",
                self.notifier.__class__.__name__,
                self.delivery_deadline,
                decision.message
            )
        elif outcome["delivered"]:
            self.notifications_sent += 1
        else:
            logger.warning(
                "Notifier %s failed to deliver: %s",
                self.notifier.__class__.__name__,
                decision.message
            )

    def _deliver_with_deadline(self, message: str) -> dict[str, Any]:
        """
        Run the notifier in a daemon thread and wait at most delivery_deadline.

        Returns:
            {"delivered": bool} when the notifier returned, {"error": exc}
            when it raised, and {} when it is still running at the deadline
        """
        notifier = self.notifier
        destination_url = self.destination_url or ""
        outcome: dict[str, Any] = {}

        def deliver() -> None:
            try:
                outcome["delivered"] = notifier.deliver(destination_url, message)
            except Exception as e:  # pylint: disable=broad-exception-caught
                outcome["error"] = e

        worker = threading.Thread(target=deliver, name="crashhook-notify", daemon=True)
        worker.start()
        worker.join(self.delivery_deadline)

        # A late result from an abandoned worker must not be reported
        return dict(outcome) if not worker.is_alive() else {}
