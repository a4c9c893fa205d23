"""
Frame parser for the supervisord eventlistener protocol.

A frame is one header line of space-separated key:value tokens followed by
exactly `len` bytes of payload. For PROCESS_STATE_* events the payload is
itself a space-separated key:value token set.
"""

from dataclasses import dataclass, field
from typing import ClassVar, Protocol

from crashhook.errors import MalformedHeader, MalformedPayload

PROCESS_STATE_PREFIX = "PROCESS_STATE_"

# Largest payload accepted from a header len
MAX_PAYLOAD_LENGTH = 16 * 1024 * 1024


class PayloadSource(Protocol):
    """Anything that can hand back an exact number of bytes."""

    def read_exact(self, n: int) -> bytes:
        ...


@dataclass
class Frame:
    """One protocol message: header tokens plus raw payload."""
    headers: dict[str, str]
    length: int
    payload: bytes

    REQUIRED_HEADERS: ClassVar[tuple[str, ...]] = ("eventname", "len")

    @property
    def eventname(self) -> str:
        return self.headers["eventname"]


@dataclass
class Event:
    """A decoded PROCESS_STATE_* frame."""
    subtype: str  # "EXITED", "FATAL", "RUNNING", ...
    payload: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def eventname(self) -> str:
        return f"{PROCESS_STATE_PREFIX}{self.subtype}"


def parse_token_set(text: str) -> dict[str, str]:
    """
    Split a line of key:value tokens into a mapping.

    Tokens are separated by spaces; each token is split on its first colon,
    so values may contain further colons. Empty tokens are skipped and a
    repeated key keeps its last value.

    Raises:
        ValueError: If a token has no colon
    """
    tokens: dict[str, str] = {}
    for token in text.strip().split(" "):
        if not token:
            continue
        key, sep, value = token.partition(":")
        if not sep:
            raise ValueError(f"Token without ':' separator: {token!r}")
        tokens[key] = value
    return tokens


def parse_header(line: str) -> dict[str, str]:
    """
    Parse an eventlistener header line.

    Args:
        line: e.g. "ver:3.0 server:supervisor serial:21 pool:listener
            poolserial:10 eventname:PROCESS_STATE_EXITED len:84"

    Returns:
        Mapping of header keys to their literal values

    Raises:
        MalformedHeader: If a token lacks a colon, eventname or len is
            missing, or len is not a non-negative integer within
            MAX_PAYLOAD_LENGTH
    """
    try:
        headers = parse_token_set(line)
    except ValueError as e:
        raise MalformedHeader(f"Invalid header line {line!r}: {e}") from e

    missing = [key for key in Frame.REQUIRED_HEADERS if key not in headers]
    if missing:
        raise MalformedHeader(
            f"Header line {line!r} is missing required key(s): {', '.join(missing)}"
        )

    length = headers["len"]
    if not length.isascii() or not length.isdigit():
        raise MalformedHeader(f"Header len must be a non-negative integer, got {length!r}")
    # Digit count first; int() refuses very long digit strings
    if len(length) > len(str(MAX_PAYLOAD_LENGTH)) or int(length) > MAX_PAYLOAD_LENGTH:
        raise MalformedHeader(
            f"Header len {length[:20]} exceeds the {MAX_PAYLOAD_LENGTH} byte payload limit"
        )

    return headers


def read_frame(header_line: str, source: PayloadSource) -> Frame:
    """
    Build a Frame from a header line, reading its payload from source.

    Raises:
        MalformedHeader: If the header line is invalid (nothing is read)
        ChannelClosed: If the payload is cut short
    """
    headers = parse_header(header_line)
    length = int(headers["len"])
    payload = source.read_exact(length) if length else b""
    return Frame(headers=headers, length=length, payload=payload)


def parse_payload(payload: bytes) -> dict[str, str]:
    """
    Decode a PROCESS_STATE_* payload into a mapping.

    Raises:
        MalformedPayload: If the payload is not UTF-8 or a token lacks a colon
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPayload(f"Payload is not valid UTF-8: {e}") from e

    try:
        return parse_token_set(text)
    except ValueError as e:
        raise MalformedPayload(f"Invalid payload {text!r}: {e}") from e


def decode_event(frame: Frame) -> Event | None:
    """
    Decode a frame into an Event.

    Returns:
        Event for PROCESS_STATE_* frames, None for any other event name

    Raises:
        MalformedPayload: If a PROCESS_STATE_* payload cannot be decoded
    """
    eventname = frame.eventname
    if not eventname.startswith(PROCESS_STATE_PREFIX):
        return None

    return Event(
        subtype=eventname[len(PROCESS_STATE_PREFIX):],
        payload=parse_payload(frame.payload),
        headers=frame.headers,
    )
