"""
Transition classifier: decides whether a process state change is a crash
worth telling somebody about.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from crashhook.parser import Event


@dataclass(frozen=True)
class WatchTarget:
    """
    A process the operator cares about.

    A bare name ("worker") matches any process called worker regardless of
    its group; a pair ("app:worker") matches only that group and process.
    """
    process: str
    group: str | None = None

    @classmethod
    def parse(cls, spec: str) -> "WatchTarget":
        """
        Build a target from "process" or "group:process".

        Raises:
            ValueError: If the spec is empty, contains whitespace, or has an
                empty group or process part
        """
        if not spec or any(ch.isspace() for ch in spec):
            raise ValueError(f"Invalid program name: {spec!r}")

        group, sep, process = spec.partition(":")
        if not sep:
            return cls(process=spec)
        if not group or not process:
            raise ValueError(f"Invalid group:process program name: {spec!r}")
        return cls(process=process, group=group)

    def matches(self, group: str, process: str) -> bool:
        if self.group is None:
            return self.process == process
        return self.group == group and self.process == process

    def __str__(self) -> str:
        if self.group is None:
            return self.process
        return f"{self.group}:{self.process}"


@dataclass(frozen=True)
class WatchSet:
    """
    The configured watch targets.

    An empty set watches every process. There is no wildcard target.
    """
    targets: frozenset[WatchTarget] = frozenset()

    @classmethod
    def from_specs(cls, specs: list[str]) -> "WatchSet":
        return cls(frozenset(WatchTarget.parse(spec) for spec in specs))

    @property
    def watch_all(self) -> bool:
        return not self.targets

    def matches(self, group: str, process: str) -> bool:
        if self.watch_all:
            return True
        return any(target.matches(group, process) for target in self.targets)


@dataclass
class Decision:
    """Classifier verdict for one event."""
    should_notify: bool
    message: str  # notification text, or the reason for ignoring
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ignore(cls, reason: str, context: dict[str, Any] | None = None) -> "Decision":
        return cls(should_notify=False, message=reason, context=context or {})

    @classmethod
    def notify(cls, message: str, context: dict[str, Any] | None = None) -> "Decision":
        return cls(should_notify=True, message=message, context=context or {})


class TransitionClassifier:
    """
    Classifies PROCESS_STATE_* events against a WatchSet.

    Only FATAL and unexpected EXITED transitions are reportable. Every other
    subtype (STARTING, RUNNING, BACKOFF, STOPPING, STOPPED, UNKNOWN, ...) is
    ignored, as is an EXITED event the supervisor marks as expected.
    """

    REPORTABLE_SUBTYPES: ClassVar[frozenset[str]] = frozenset({"EXITED", "FATAL"})

    def __init__(self, watch_set: WatchSet) -> None:
        self.watch_set = watch_set

    def classify(self, event: Event) -> Decision:
        """Return a notify or ignore Decision for event. Never raises."""
        payload = event.payload
        group = payload.get("groupname", "")
        process = payload.get("processname", "")
        context = {
            "eventname": event.eventname,
            "groupname": group,
            "processname": process,
            "from_state": payload.get("from_state", ""),
            "pid": payload.get("pid", ""),
        }

        if event.subtype not in self.REPORTABLE_SUBTYPES:
            return Decision.ignore(f"{event.eventname} is not a crash transition", context)

        if event.subtype == "EXITED" and payload.get("expected") == "1":
            return Decision.ignore(f"{group}:{process} exited expectedly", context)

        if not self.watch_set.matches(group, process):
            return Decision.ignore(f"{group}:{process} is not watched", context)

        return Decision.notify(format_message(event), context)


def classify(event: Event, watch_set: WatchSet) -> Decision:
    """Classify a single event against watch_set."""
    return TransitionClassifier(watch_set).classify(event)


def format_message(event: Event) -> str:
    """
    Render a crash event as a chat message body.

    Example:
        Process worker in group app exited unexpectedly
        (PROCESS_STATE_EXITED, pid 4242) from state RUNNING
    """
    payload = event.payload
    process = payload.get("processname") or "<unknown>"
    group = payload.get("groupname") or "<unknown>"
    from_state = payload.get("from_state") or "UNKNOWN"

    if event.subtype == "FATAL":
        what = "could not be started and entered FATAL state"
    else:
        what = "exited unexpectedly"

    details = event.eventname
    if payload.get("pid"):
        details = f"{details}, pid {payload['pid']}"

    return f"Process {process} in group {group} {what} ({details}) from state {from_state}"
