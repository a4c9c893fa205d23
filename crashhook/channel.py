"""
Event channel between supervisord and the listener.

supervisord talks to an event listener over the listener's stdin/stdout.
This module wraps those two binary streams with the handful of blocking
operations the protocol needs and maps end-of-input and broken pipes to
ChannelClosed.
"""

from typing import BinaryIO

from crashhook.errors import ChannelClosed
from crashhook.logging_config import get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class EventChannel:
    """
    Sequential, synchronous reader/writer for the eventlistener streams.

    Reads are line-at-a-time for headers and exact-length for payloads.
    Every write is flushed immediately so supervisord sees each token as
    soon as it is produced.
    """

    def __init__(self, reader: BinaryIO, writer: BinaryIO, encoding: str = "utf-8") -> None:
        """
        Initialize the channel.

        Args:
            reader: Binary stream carrying events from supervisord
            writer: Binary stream carrying protocol tokens to supervisord
            encoding: Text encoding for header lines and written tokens
        """
        self.reader = reader
        self.writer = writer
        self.encoding = encoding

    def read_header_line(self) -> str:
        """
        Read one newline-terminated header line.

        Returns:
            The line without its trailing newline

        Raises:
            ChannelClosed: If the stream ends before a full line is read
        """
        try:
            raw = self.reader.readline()
        except (OSError, ValueError) as e:
            raise ChannelClosed(f"Failed to read header line: {e}") from e

        if not raw:
            raise ChannelClosed("End of input while waiting for a header line")
        if not raw.endswith(b"\n"):
            raise ChannelClosed(f"End of input inside a header line ({len(raw)} bytes read)")

        return raw[:-1].decode(self.encoding, errors="replace").rstrip("\r")

    def read_exact(self, n: int) -> bytes:
        """
        Read exactly n bytes.

        Args:
            n: Number of bytes to read

        Returns:
            A bytes object of length n

        Raises:
            ChannelClosed: If the stream ends before n bytes are read
        """
        # Bounded reads; BufferedReader.read(n) allocates n bytes up front
        chunks: list[bytes] = []
        remaining = n

        while remaining > 0:
            try:
                chunk = self.reader.read(min(remaining, READ_CHUNK_SIZE))
            except (OSError, ValueError) as e:
                raise ChannelClosed(f"Failed to read payload: {e}") from e

            if not chunk:
                raise ChannelClosed(
                    f"End of input after {n - remaining} of {n} payload bytes"
                )
            chunks.append(chunk)
            remaining -= len(chunk)

        return b"".join(chunks)

    def write(self, data: str) -> None:
        """
        Write raw text to supervisord and flush.

        Raises:
            ChannelClosed: If the destination is closed
        """
        try:
            self.writer.write(data.encode(self.encoding))
            self.writer.flush()
        except (OSError, ValueError) as e:
            # BrokenPipeError is an OSError, writing to a closed file a ValueError
            raise ChannelClosed(f"Failed to write to supervisor: {e}") from e

    def write_line(self, line: str) -> None:
        """Write a newline-terminated line to supervisord and flush."""
        self.write(f"{line}\n")
