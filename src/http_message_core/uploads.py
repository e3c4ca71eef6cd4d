"""
Uploaded files for http_message_core.

An UploadedFile describes one file received with a server request. It
wraps either a Stream or a path on disk, and can be moved to its final
destination exactly once.
"""

import logging
import os
import shutil
from enum import IntEnum
from typing import (
    Any,
    BinaryIO,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from .exceptions import IllegalStateError, InvalidArgumentError, StreamError
from .streams import Stream

logger = logging.getLogger(__name__)

FileSource = Union[Stream, bytes, bytearray, BinaryIO, str, "os.PathLike[str]"]


class UploadError(IntEnum):
    """Upload status codes."""

    OK = 0
    INI_SIZE = 1     # Exceeds the server size limit
    FORM_SIZE = 2    # Exceeds the size limit declared by the form
    PARTIAL = 3      # Only partially uploaded
    NO_FILE = 4      # No file was uploaded
    NO_TMP_DIR = 6   # Missing a temporary folder
    CANT_WRITE = 7   # Failed to write file to disk
    EXTENSION = 8    # Stopped by an extension

    @classmethod
    def from_value(cls, value: Union["UploadError", int]) -> "UploadError":
        """Convert an integer code, raising InvalidArgumentError for unknown ones."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError("upload error status must be an integer")
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidArgumentError(f"invalid upload error status {value!r}", e) from e


def _optional_str(name: str, value: Optional[str]) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string or None")
    return value


class UploadedFile:
    """
    A file uploaded through an HTTP request.

    The client filename and media type are supplied by the client and
    must not be trusted. A failed upload (error other than OK) exposes
    its metadata but neither its stream nor move_to().
    """

    def __init__(
        self,
        file: Optional[FileSource],
        size: Optional[int] = None,
        error: Union[UploadError, int] = UploadError.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ) -> None:
        """
        Initialize UploadedFile.

        Args:
            file: Stream, bytes, binary handle or path to the uploaded data
            size: Size in bytes; measured from the source when omitted
            error: Upload status
            client_filename: Filename sent by the client
            client_media_type: Media type sent by the client

        Raises:
            InvalidArgumentError: On an unknown error status or an unusable
                source for a successful upload
        """
        self._error = UploadError.from_value(error)
        self._client_filename = _optional_str("client_filename", client_filename)
        self._client_media_type = _optional_str("client_media_type", client_media_type)
        self._stream: Optional[Stream] = None
        self._file: Optional[str] = None
        self._moved = False

        if size is not None and (
            isinstance(size, bool) or not isinstance(size, int) or size < 0
        ):
            raise InvalidArgumentError("upload file size must be a non-negative integer")

        self._bind(file)
        self._size = size if size is not None else self._measure()

    def _bind(self, file: Optional[FileSource]) -> None:
        strict = self._error is UploadError.OK

        if isinstance(file, Stream):
            if strict and file.detached:
                raise InvalidArgumentError("uploaded file stream is detached")
            self._stream = file
        elif isinstance(file, (str, os.PathLike)):
            path = os.fspath(file)
            if strict and not path:
                raise InvalidArgumentError("uploaded file path can not be empty")
            self._file = path or None
        elif not strict:
            # Failed uploads may not come with any usable data
            return
        elif isinstance(file, (bytes, bytearray)):
            self._stream = Stream.from_bytes(bytes(file))
        elif file is not None and hasattr(file, "read"):
            self._stream = Stream(file)
        else:
            raise InvalidArgumentError("invalid stream or file provided for UploadedFile")

    def _measure(self) -> Optional[int]:
        if self._stream is not None:
            return self._stream.size
        if self._file is not None and os.path.isfile(self._file):
            return os.path.getsize(self._file)
        return None

    def _validate_active(self) -> None:
        if self._error is not UploadError.OK:
            raise IllegalStateError(
                f"cannot use an uploaded file that failed with {self._error.name}"
            )
        if self._moved:
            raise IllegalStateError("uploaded file has already been moved")

    @property
    def size(self) -> Optional[int]:
        return self._size

    @property
    def error(self) -> UploadError:
        return self._error

    @property
    def client_filename(self) -> Optional[str]:
        return self._client_filename

    @property
    def client_media_type(self) -> Optional[str]:
        return self._client_media_type

    @property
    def moved(self) -> bool:
        """Get whether move_to() has completed."""
        return self._moved

    def get_stream(self) -> Stream:
        """
        Get the stream of the uploaded file, opening a path source lazily.

        Raises:
            IllegalStateError: If the file was moved or the upload failed
            StreamError: If a path source cannot be opened
        """
        self._validate_active()

        if self._stream is None:
            if self._file is None:
                raise IllegalStateError("uploaded file has no stream or path")
            try:
                handle = open(self._file, "rb")
            except OSError as e:
                raise StreamError(f"Unable to open uploaded file {self._file}: {e}", e) from e
            self._stream = Stream(handle)

        return self._stream

    def move_to(self, target_path: Union[str, "os.PathLike[str]"]) -> None:
        """
        Move the uploaded file to target_path.

        A path source is moved on disk; a stream source is copied from
        its beginning. The move is not retried on failure.

        Raises:
            InvalidArgumentError: If target_path is not a non-empty path
                or names an existing directory
            IllegalStateError: If the file was moved or the upload failed
            StreamError: If the destination cannot be written
        """
        self._validate_active()

        if not isinstance(target_path, (str, os.PathLike)) or not os.fspath(target_path):
            raise InvalidArgumentError("invalid path provided for move operation")
        target = os.fspath(target_path)
        if os.path.isdir(target):
            raise InvalidArgumentError(f"cannot move uploaded file onto directory {target}")

        try:
            if self._file is not None:
                if self._stream is not None:
                    self._stream.close()
                    self._stream = None
                shutil.move(self._file, target)
            else:
                self._copy_stream_to(target)
        except StreamError:
            raise
        except OSError as e:
            raise StreamError(f"Uploaded file could not be moved to {target}: {e}", e) from e

        self._moved = True
        if self._stream is not None:
            self._stream.close()
        logger.debug(f"Uploaded file moved to {target}")

    def _copy_stream_to(self, target: str) -> None:
        stream = self.get_stream()
        if stream.seekable:
            stream.rewind()
        with open(target, "wb") as destination:
            for chunk in stream.iter_chunks():
                destination.write(chunk)

    def __repr__(self) -> str:
        return (
            f"<UploadedFile {self._client_filename!r} size={self._size} "
            f"error={self._error.name} moved={self._moved}>"
        )


def validate_uploaded_files(tree: Any) -> None:
    """
    Check that every leaf of a nested mapping/sequence is an UploadedFile.

    Raises:
        InvalidArgumentError: On any other leaf
    """
    if isinstance(tree, UploadedFile):
        return
    if isinstance(tree, Mapping):
        for value in tree.values():
            validate_uploaded_files(value)
    elif isinstance(tree, Sequence) and not isinstance(tree, (str, bytes, bytearray)):
        for value in tree:
            validate_uploaded_files(value)
    else:
        raise InvalidArgumentError(
            f"invalid leaf in uploaded files structure: {type(tree).__name__}"
        )
