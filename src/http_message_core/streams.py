"""
Stream abstraction for http_message_core.

This module provides the byte stream used as the body of every HTTP
message. A Stream wraps a binary file-like handle, exposes fixed
capability flags and owns the handle until it is detached or closed.
"""

import io
import logging
import os
import tempfile
from typing import (
    Any,
    BinaryIO,
    Dict,
    Iterator,
    Optional,
    Union,
)

from .exceptions import IllegalStateError, InvalidArgumentError, StreamError

logger = logging.getLogger(__name__)

# Data held in memory before a temporary stream spills to disk
DEFAULT_MAX_MEMORY_SIZE = 2 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 8192

StreamContent = Union[bytes, bytearray, memoryview, str]


def _probe(handle: Any, capability: str) -> bool:
    """Ask a handle for one of its io capabilities, using its mode as fallback."""
    probe = getattr(handle, capability, None)
    if callable(probe):
        try:
            return bool(probe())
        except (ValueError, OSError):
            # Closed handles raise ValueError on capability probes
            return False

    mode = getattr(handle, "mode", "")
    if not isinstance(mode, str):
        return False
    if capability == "readable":
        return "r" in mode or "+" in mode
    if capability == "writable":
        return any(flag in mode for flag in "wax+")
    return capability == "seekable" and hasattr(handle, "seek")


class Stream:
    """
    Cursor over a sequence of bytes.

    The readable, writable and seekable flags are probed once from the
    handle and never change afterwards. Once the stream is detached or
    closed every operation touching the handle raises IllegalStateError.
    Stream carries mutable cursor state and has no internal locking.
    """

    def __init__(
        self,
        handle: BinaryIO,
        size: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize Stream.

        Args:
            handle: An open binary file-like object
            size: Known size of the content, if the handle cannot report it
            metadata: Extra metadata merged into get_metadata()

        Raises:
            InvalidArgumentError: If the handle is not a readable binary handle
        """
        if handle is None or not hasattr(handle, "read"):
            raise InvalidArgumentError("stream handle must be a file-like object")

        if isinstance(handle, io.TextIOBase):
            raise InvalidArgumentError("stream handle must be opened in binary mode")

        if size is not None and size < 0:
            raise InvalidArgumentError("size must be non-negative")

        self._handle: Optional[BinaryIO] = handle
        self._readable = _probe(handle, "readable")
        self._writable = _probe(handle, "writable")
        self._seekable = _probe(handle, "seekable")
        self._size = size
        self._metadata = dict(metadata or {})
        self._eof = False
        self._closed = False

        if not self._readable:
            raise InvalidArgumentError("stream handle is not readable")

    @classmethod
    def from_bytes(
        cls,
        content: StreamContent = b"",
        rewind: bool = True,
        max_memory_size: int = DEFAULT_MAX_MEMORY_SIZE,
    ) -> "Stream":
        """
        Create a temporary-backed stream holding content.

        The stream is always readable, writable and seekable. Content is
        kept in memory up to max_memory_size and spills to a temporary
        file beyond that.

        Args:
            content: Initial content; str is encoded as UTF-8
            rewind: Leave the cursor at offset 0 instead of end of content
            max_memory_size: Bytes kept in memory before spilling to disk

        Returns:
            New Stream instance
        """
        if isinstance(content, str):
            content = content.encode("utf-8")
        elif not isinstance(content, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                f"stream content must be bytes or str, not {type(content).__name__}"
            )

        handle = tempfile.SpooledTemporaryFile(max_size=max_memory_size, mode="w+b")
        if content:
            handle.write(content)
        if rewind:
            handle.seek(0)

        return cls(handle, metadata={"uri": "temp"})  # type: ignore[arg-type]

    def _check_attached(self) -> BinaryIO:
        if self._handle is None:
            state = "closed" if self._closed else "detached"
            raise IllegalStateError(f"stream is {state}")
        return self._handle

    @property
    def readable(self) -> bool:
        """Get whether the stream can be read."""
        return self._readable

    @property
    def writable(self) -> bool:
        """Get whether the stream can be written."""
        return self._writable

    @property
    def seekable(self) -> bool:
        """Get whether the stream supports random access."""
        return self._seekable

    @property
    def detached(self) -> bool:
        """Get whether the backing handle has been released or closed."""
        return self._handle is None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def size(self) -> Optional[int]:
        """
        Get the size of the stream in bytes.

        Returns None when the size cannot be determined, which is the
        case for non-seekable sources and for inert streams.
        """
        if self._handle is None:
            return None

        if not self._seekable:
            return self._size

        try:
            position = self._handle.tell()
            self._handle.seek(0, io.SEEK_END)
            end = self._handle.tell()
            self._handle.seek(position)
            return end
        except (OSError, ValueError) as e:
            logger.debug(f"Unable to measure stream by seeking: {e}")

        try:
            return os.fstat(self._handle.fileno()).st_size
        except (AttributeError, OSError, ValueError):
            return self._size

    def tell(self) -> int:
        """Return the current cursor position."""
        handle = self._check_attached()
        try:
            return handle.tell()
        except (OSError, ValueError) as e:
            raise StreamError(f"Unable to determine stream position: {e}", e) from e

    def eof(self) -> bool:
        """Return True when the cursor is at the end of the stream."""
        handle = self._check_attached()
        if self._seekable:
            size = self.size
            return size is not None and handle.tell() >= size
        return self._eof

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """
        Move the cursor.

        Args:
            offset: Offset relative to whence
            whence: io.SEEK_SET, io.SEEK_CUR or io.SEEK_END

        Returns:
            The new absolute position

        Raises:
            IllegalStateError: If the stream is detached or closed
            StreamError: If the stream is not seekable or seeking fails
        """
        handle = self._check_attached()
        if not self._seekable:
            raise StreamError("Stream is not seekable")
        if whence not in (io.SEEK_SET, io.SEEK_CUR, io.SEEK_END):
            raise InvalidArgumentError(f"invalid whence value {whence!r}")

        try:
            handle.seek(offset, whence)
            position = handle.tell()
        except (OSError, ValueError) as e:
            raise StreamError(
                f"Unable to seek to position {offset} with whence {whence}: {e}", e
            ) from e

        self._eof = False
        return position

    def rewind(self) -> None:
        """Seek to the beginning of the stream."""
        self.seek(0)

    def read(self, length: int = -1) -> bytes:
        """
        Read up to length bytes; a negative length reads to the end.

        Raises:
            IllegalStateError: If the stream is detached or closed
            StreamError: If the stream is not readable or reading fails
        """
        handle = self._check_attached()
        if not self._readable:
            raise StreamError("Cannot read from non-readable stream")

        try:
            data = handle.read(length if length >= 0 else -1)
        except (OSError, ValueError) as e:
            raise StreamError(f"Error reading from stream: {e}", e) from e

        if data is None:
            # Non-blocking handle with nothing available yet
            return b""

        if length < 0 or (length > 0 and len(data) < length):
            self._eof = True
        return data

    def write(self, data: Union[bytes, bytearray, memoryview]) -> int:
        """
        Write data at the cursor.

        Returns:
            The number of bytes written

        Raises:
            IllegalStateError: If the stream is detached or closed
            StreamError: If the stream is not writable or writing fails
        """
        handle = self._check_attached()
        if not self._writable:
            raise StreamError("Cannot write to a non-writable stream")

        try:
            written = handle.write(data)
        except (OSError, ValueError) as e:
            raise StreamError(f"Error writing to stream: {e}", e) from e

        # The size of a handle we cannot measure is now stale
        self._size = None
        return len(data) if written is None else written

    def get_contents(self) -> bytes:
        """Read the remainder of the stream from the current position."""
        return self.read()

    def to_string(self, encoding: str = "utf-8", errors: str = "strict") -> str:
        """Return the whole content decoded as text."""
        return bytes(self).decode(encoding, errors)

    def __bytes__(self) -> bytes:
        """Return the whole content, rewinding first when seekable."""
        if self._seekable:
            self.rewind()
        return self.get_contents()

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the remainder of the stream in chunks."""
        if chunk_size <= 0:
            raise InvalidArgumentError("chunk_size must be positive")
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_chunks()

    def get_metadata(self, key: Optional[str] = None) -> Any:
        """
        Get stream metadata.

        Args:
            key: Metadata key to look up. If None, all metadata is returned.

        Returns:
            The metadata dict, the value for key, or None if missing
        """
        if self._handle is None:
            return {} if key is None else None

        metadata: Dict[str, Any] = {
            "mode": getattr(self._handle, "mode", None),
            "seekable": self._seekable,
            "uri": getattr(self._handle, "name", None),
        }
        metadata.update(self._metadata)

        if key is None:
            return metadata
        return metadata.get(key)

    def detach(self) -> Optional[BinaryIO]:
        """
        Release the backing handle to the caller.

        After this call the stream is inert. Detaching twice returns None.
        """
        handle = self._handle
        self._handle = None
        if handle is not None:
            logger.debug("Stream detached from its backing handle")
        return handle

    def close(self) -> None:
        """Close the backing handle. Calling it more than once is harmless."""
        handle = self.detach()
        self._closed = True
        if handle is None:
            return
        try:
            handle.close()
        except OSError as e:
            logger.warning(f"Error closing stream handle: {e}")

    def __enter__(self) -> "Stream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        flags = "".join(
            flag
            for flag, enabled in (
                ("r", self._readable),
                ("w", self._writable),
                ("s", self._seekable),
            )
            if enabled
        )
        state = "detached" if self._handle is None else "attached"
        return f"<Stream [{flags}] {state}>"
