"""
Unit tests for the stream abstraction.

Tests capability probing, cursor handling, temporary backing
and the detach/close lifecycle of Stream.
"""

import io

import pytest

from http_message_core.exceptions import (
    IllegalStateError,
    InvalidArgumentError,
    StreamError,
)
from http_message_core.streams import Stream


class TestStreamFromBytes:
    """Test temporary-backed streams."""

    def test_content_is_readable_immediately(self) -> None:
        """Test that a new stream is positioned at offset 0."""
        stream = Stream.from_bytes(b"hello")

        assert stream.tell() == 0
        assert stream.read() == b"hello"

    def test_flags(self) -> None:
        """Test that temporary streams have every capability."""
        stream = Stream.from_bytes(b"hello")

        assert stream.readable is True
        assert stream.writable is True
        assert stream.seekable is True
        assert stream.detached is False

    def test_text_is_utf8_encoded(self) -> None:
        """Test creating a stream from str."""
        stream = Stream.from_bytes("héllo")
        assert stream.read() == "héllo".encode("utf-8")

    def test_without_rewind(self) -> None:
        """Test leaving the cursor at the end of the written content."""
        stream = Stream.from_bytes(b"hello", rewind=False)

        assert stream.tell() == 5
        assert stream.read() == b""
        assert stream.eof()

    def test_empty(self) -> None:
        """Test an empty stream."""
        stream = Stream.from_bytes()

        assert stream.size == 0
        assert stream.get_contents() == b""
        assert stream.eof()

    def test_invalid_content(self) -> None:
        """Test that unsupported content types are rejected."""
        with pytest.raises(InvalidArgumentError):
            Stream.from_bytes(12345)  # type: ignore[arg-type]

    def test_spills_to_disk(self) -> None:
        """Test that content above the memory limit is still fully available."""
        data = b"x" * 4096
        stream = Stream.from_bytes(data, max_memory_size=1024)

        assert stream.size == 4096
        assert stream.read() == data


class TestStreamOperations:
    """Test reading, writing and seeking."""

    def test_read_in_parts(self, text_stream) -> None:
        """Test reading a stream in several calls."""
        stream = text_stream(b"Hello, World!")

        assert stream.read(5) == b"Hello"
        assert stream.tell() == 5
        assert stream.get_contents() == b", World!"
        assert stream.eof()

    def test_write_then_read(self) -> None:
        """Test writing to a stream and reading it back."""
        stream = Stream.from_bytes()

        assert stream.write(b"abc") == 3
        assert stream.size == 3
        stream.rewind()
        assert stream.read() == b"abc"

    def test_seek(self, text_stream) -> None:
        """Test seeking with every whence value."""
        stream = text_stream(b"0123456789")

        assert stream.seek(4) == 4
        assert stream.read(2) == b"45"
        assert stream.seek(-3, io.SEEK_END) == 7
        assert stream.seek(1, io.SEEK_CUR) == 8
        assert stream.read() == b"89"

    def test_invalid_whence(self, text_stream) -> None:
        """Test that an unknown whence value is rejected."""
        with pytest.raises(InvalidArgumentError):
            text_stream().seek(0, 42)

    def test_size_does_not_move_cursor(self, text_stream) -> None:
        """Test that measuring the stream keeps the position."""
        stream = text_stream(b"0123456789")
        stream.read(3)

        assert stream.size == 10
        assert stream.tell() == 3

    def test_bytes_reads_whole_content(self, text_stream) -> None:
        """Test that bytes() rewinds before reading."""
        stream = text_stream(b"Hello, World!")
        stream.read(7)

        assert bytes(stream) == b"Hello, World!"
        assert stream.to_string() == "Hello, World!"

    def test_get_contents_reads_from_cursor(self, text_stream) -> None:
        """Test that get_contents() starts at the current position."""
        stream = text_stream(b"Hello, World!")
        stream.seek(7)

        assert stream.get_contents() == b"World!"

    def test_iteration(self) -> None:
        """Test iterating a stream in chunks."""
        stream = Stream.from_bytes(b"abcdefgh")

        assert list(stream.iter_chunks(3)) == [b"abc", b"def", b"gh"]

    def test_iteration_invalid_chunk_size(self, text_stream) -> None:
        """Test that chunk sizes must be positive."""
        with pytest.raises(InvalidArgumentError):
            list(text_stream().iter_chunks(0))

    def test_metadata(self, text_stream) -> None:
        """Test metadata of a temporary stream."""
        stream = text_stream()

        metadata = stream.get_metadata()
        assert metadata["seekable"] is True
        assert metadata["uri"] == "temp"
        assert stream.get_metadata("uri") == "temp"
        assert stream.get_metadata("missing") is None


class TestStreamFromHandle:
    """Test streams wrapping externally supplied handles."""

    def test_flags_mirror_handle(self, non_seekable_reader) -> None:
        """Test that capability flags are probed from the handle."""
        stream = Stream(non_seekable_reader(b"data"))

        assert stream.readable is True
        assert stream.writable is False
        assert stream.seekable is False

    def test_unreadable_handle_rejected(self, write_only_handle) -> None:
        """Test that a handle which cannot be read is rejected."""
        with pytest.raises(InvalidArgumentError, match="not readable"):
            Stream(write_only_handle)

    def test_text_handle_rejected(self) -> None:
        """Test that text handles are rejected."""
        with pytest.raises(InvalidArgumentError, match="binary"):
            Stream(io.StringIO("text"))  # type: ignore[arg-type]

    def test_non_file_rejected(self) -> None:
        """Test that objects without read() are rejected."""
        with pytest.raises(InvalidArgumentError):
            Stream(object())  # type: ignore[arg-type]

    def test_non_seekable_operations(self, non_seekable_reader) -> None:
        """Test that a non-seekable stream reads but neither seeks nor writes."""
        stream = Stream(non_seekable_reader(b"abcdef"))

        assert stream.size is None
        assert stream.read(4) == b"abcd"
        assert not stream.eof()
        assert stream.read(10) == b"ef"
        assert stream.eof()

        with pytest.raises(StreamError, match="not seekable"):
            stream.seek(0)
        with pytest.raises(StreamError, match="non-writable"):
            stream.write(b"x")

    def test_declared_size_for_non_seekable(self, non_seekable_reader) -> None:
        """Test that a declared size is reported for unmeasurable handles."""
        stream = Stream(non_seekable_reader(b"abc"), size=3)
        assert stream.size == 3

    def test_negative_size_rejected(self, non_seekable_reader) -> None:
        """Test that negative sizes are rejected."""
        with pytest.raises(InvalidArgumentError):
            Stream(non_seekable_reader(), size=-1)

    def test_file_handle(self, tmp_path) -> None:
        """Test wrapping a real file opened for reading."""
        path = tmp_path / "body.bin"
        path.write_bytes(b"file content")

        with open(path, "rb") as handle:
            stream = Stream(handle)
            assert stream.seekable is True
            assert stream.writable is False
            assert stream.size == 12
            assert stream.read() == b"file content"

    def test_read_only_stream_write_fails(self) -> None:
        """Test writing to a read-only BytesIO-backed reader."""
        stream = Stream(io.BufferedReader(io.BytesIO(b"abc")))  # type: ignore[arg-type]

        with pytest.raises(StreamError):
            stream.write(b"x")


class TestStreamLifecycle:
    """Test detach and close."""

    def test_detach_returns_handle(self, text_stream) -> None:
        """Test that detach hands the backing handle to the caller."""
        stream = text_stream(b"payload")

        handle = stream.detach()

        assert handle is not None
        assert stream.detached is True
        handle.seek(0)
        assert handle.read() == b"payload"

    def test_operations_fail_after_detach(self, text_stream) -> None:
        """Test that every operation fails once detached."""
        stream = text_stream(b"payload")
        stream.detach()

        with pytest.raises(IllegalStateError):
            stream.read()
        with pytest.raises(IllegalStateError):
            stream.write(b"x")
        with pytest.raises(IllegalStateError):
            stream.seek(0)
        with pytest.raises(IllegalStateError):
            stream.tell()
        with pytest.raises(IllegalStateError):
            stream.eof()

    def test_flags_do_not_change_after_detach(self, text_stream) -> None:
        """Test that capability flags are fixed for the stream lifetime."""
        stream = text_stream()
        stream.detach()

        assert stream.readable is True
        assert stream.writable is True
        assert stream.seekable is True
        assert stream.size is None
        assert stream.get_metadata() == {}

    def test_second_detach_returns_none(self, text_stream) -> None:
        """Test that detaching twice is harmless."""
        stream = text_stream()
        stream.detach()
        assert stream.detach() is None

    def test_close_is_idempotent(self, text_stream) -> None:
        """Test closing a stream more than once."""
        stream = text_stream()

        stream.close()
        stream.close()

        assert stream.closed is True
        with pytest.raises(IllegalStateError, match="closed"):
            stream.read()

    def test_close_closes_handle(self, tmp_path) -> None:
        """Test that close releases the backing handle."""
        path = tmp_path / "body.bin"
        path.write_bytes(b"abc")
        handle = open(path, "rb")

        stream = Stream(handle)
        stream.close()

        assert handle.closed

    def test_context_manager(self) -> None:
        """Test using a stream as a context manager."""
        with Stream.from_bytes(b"abc") as stream:
            assert stream.read() == b"abc"
        assert stream.closed is True
