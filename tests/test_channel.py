"""
Tests for the supervisord event channel.
"""

import io

import pytest

from crashhook.channel import READ_CHUNK_SIZE, EventChannel
from crashhook.errors import ChannelClosed


class ChunkedReader(io.RawIOBase):
    """Reader that hands out at most chunk_size bytes per read() call."""

    def __init__(self, data: bytes, chunk_size: int) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self.requested: list[int] = []

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self.requested.append(size)
        size = self._chunk_size if size < 0 else min(size, self._chunk_size)
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk


class TestReadHeaderLine:
    """Tests for EventChannel.read_header_line."""

    def test_reads_one_line(self, output: io.BytesIO) -> None:
        """Test that a single line is returned without its newline."""
        channel = EventChannel(io.BytesIO(b"ver:3.0 len:0\nrest"), output)

        assert channel.read_header_line() == "ver:3.0 len:0"

    def test_strips_carriage_return(self, output: io.BytesIO) -> None:
        """Test that CRLF line endings are tolerated."""
        channel = EventChannel(io.BytesIO(b"ver:3.0 len:0\r\n"), output)

        assert channel.read_header_line() == "ver:3.0 len:0"

    def test_end_of_input_raises(self, output: io.BytesIO) -> None:
        """Test that an empty stream closes the channel."""
        channel = EventChannel(io.BytesIO(b""), output)

        with pytest.raises(ChannelClosed):
            channel.read_header_line()

    def test_partial_line_raises(self, output: io.BytesIO) -> None:
        """Test that end of input inside a line closes the channel."""
        channel = EventChannel(io.BytesIO(b"ver:3.0 len:"), output)

        with pytest.raises(ChannelClosed, match="inside a header line"):
            channel.read_header_line()


class TestReadExact:
    """Tests for EventChannel.read_exact."""

    def test_reads_exact_count(self, output: io.BytesIO) -> None:
        """Test that exactly n bytes are consumed."""
        reader = io.BytesIO(b"HelloWorld")
        channel = EventChannel(reader, output)

        assert channel.read_exact(5) == b"Hello"
        assert reader.read() == b"World"

    def test_assembles_short_reads(self, output: io.BytesIO) -> None:
        """Test that several short reads are joined into one block."""
        channel = EventChannel(ChunkedReader(b"processname:cat", 4), output)

        assert channel.read_exact(15) == b"processname:cat"

    def test_zero_bytes(self, output: io.BytesIO) -> None:
        """Test that reading zero bytes returns an empty block."""
        channel = EventChannel(io.BytesIO(b""), output)

        assert channel.read_exact(0) == b""

    def test_premature_end_raises(self, output: io.BytesIO) -> None:
        """Test that a short payload closes the channel instead of returning fewer bytes."""
        channel = EventChannel(io.BytesIO(b"abc"), output)

        with pytest.raises(ChannelClosed, match="3 of 10"):
            channel.read_exact(10)

    def test_large_count_read_in_bounded_chunks(self, output: io.BytesIO) -> None:
        """Test that a large payload arrives whole while each read() asks for a bounded size."""
        data = b"x" * (3 * READ_CHUNK_SIZE + 5)
        reader = ChunkedReader(data, chunk_size=len(data))
        channel = EventChannel(reader, output)

        assert channel.read_exact(len(data)) == data
        assert max(reader.requested) == READ_CHUNK_SIZE

    def test_huge_count_on_buffered_reader_raises_channel_closed(self, output: io.BytesIO) -> None:
        """Test that a count larger than memory ends in ChannelClosed, not OverflowError."""
        channel = EventChannel(io.BufferedReader(io.BytesIO(b"abc")), output)

        with pytest.raises(ChannelClosed, match="3 of"):
            channel.read_exact(10 ** 20)


class TestWrite:
    """Tests for EventChannel writes."""

    def test_write_line(self, output: io.BytesIO) -> None:
        """Test that write_line appends a newline."""
        channel = EventChannel(io.BytesIO(b""), output)

        channel.write_line("READY")

        assert output.getvalue() == b"READY\n"

    def test_write_raw(self, output: io.BytesIO) -> None:
        """Test that write sends text unchanged."""
        channel = EventChannel(io.BytesIO(b""), output)

        channel.write("RESULT 2\nOK")

        assert output.getvalue() == b"RESULT 2\nOK"

    def test_write_to_closed_stream_raises(self) -> None:
        """Test that writing to a closed destination closes the channel."""
        writer = io.BytesIO()
        writer.close()
        channel = EventChannel(io.BytesIO(b""), writer)

        with pytest.raises(ChannelClosed):
            channel.write_line("READY")

    def test_broken_pipe_raises(self) -> None:
        """Test that a broken pipe closes the channel."""

        class BrokenWriter(io.RawIOBase):
            def writable(self) -> bool:
                return True

            def write(self, b: bytes) -> int:
                raise BrokenPipeError("Broken pipe")

        channel = EventChannel(io.BytesIO(b""), BrokenWriter())

        with pytest.raises(ChannelClosed, match="Broken pipe"):
            channel.write("RESULT 2\nOK")
