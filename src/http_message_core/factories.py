"""
Factories for http_message_core.

Each creation capability is a separate abstract interface so that
callers can depend on the narrowest one they need. HttpFactory is the
concrete implementation of all of them.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import (
    Any,
    BinaryIO,
    Mapping,
    Optional,
    Union,
)

from .environment import (
    EnvironmentProvider,
    EnvironmentSnapshot,
    cookies_from_snapshot,
    normalize_files,
    parse_query_params,
    protocol_version_from_snapshot,
    request_target_from_snapshot,
    uri_from_snapshot,
)
from .exceptions import InvalidArgumentError, StreamError
from .headers import Headers
from .http_primitives import DEFAULT_PROTOCOL_VERSION, Request, Response
from .server_request import ServerRequest
from .streams import DEFAULT_MAX_MEMORY_SIZE, Stream, StreamContent
from .uploads import FileSource, UploadError, UploadedFile
from .uri import Uri

logger = logging.getLogger(__name__)

_VALID_FILE_MODES = frozenset(
    mode + suffix
    for mode in ("r", "r+", "w", "w+", "a", "a+", "x", "x+")
    for suffix in ("", "b")
)


class UriFactory(ABC):
    """Capability to create URIs."""

    @abstractmethod
    def create_uri(self, uri: str = "") -> Uri:
        """
        Create a Uri from a string.

        Raises:
            InvalidArgumentError: If the string cannot be parsed
        """
        pass


class StreamFactory(ABC):
    """Capability to create streams."""

    @abstractmethod
    def create_stream(self, content: Union[StreamContent, BinaryIO] = b"") -> Stream:
        """
        Create a stream from bytes, text or an open binary handle.

        Raises:
            InvalidArgumentError: If a handle is not readable
        """
        pass

    @abstractmethod
    def create_stream_from_file(self, filename: str, mode: str = "rb") -> Stream:
        """
        Create a stream from an existing file.

        Raises:
            InvalidArgumentError: If the mode is invalid
            StreamError: If the file cannot be opened
        """
        pass

    @abstractmethod
    def create_stream_from_resource(self, handle: BinaryIO) -> Stream:
        """Create a stream wrapping an already-open handle."""
        pass


class UploadedFileFactory(ABC):
    """Capability to create uploaded files."""

    @abstractmethod
    def create_uploaded_file(
        self,
        file: FileSource,
        size: Optional[int] = None,
        error: Union[UploadError, int] = UploadError.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ) -> UploadedFile:
        pass


class RequestFactory(ABC):
    """Capability to create client requests."""

    @abstractmethod
    def create_request(self, method: str, uri: Union[Uri, str]) -> Request:
        pass


class ResponseFactory(ABC):
    """Capability to create responses."""

    @abstractmethod
    def create_response(self, code: int = 200, reason_phrase: str = "") -> Response:
        pass


class ServerRequestFactory(ABC):
    """Capability to create server-side requests."""

    @abstractmethod
    def create_server_request(
        self,
        method: str,
        uri: Union[Uri, str],
        server_params: Optional[Mapping[str, Any]] = None,
    ) -> ServerRequest:
        pass

    @abstractmethod
    def create_server_request_from_globals(
        self,
        environment: Union[EnvironmentSnapshot, EnvironmentProvider],
    ) -> ServerRequest:
        pass


class HttpFactory(
    UriFactory,
    StreamFactory,
    UploadedFileFactory,
    RequestFactory,
    ResponseFactory,
    ServerRequestFactory,
):
    """
    Factory implementing every creation capability.

    A factory only carries configuration; nothing is shared between
    calls, so one instance can be used from any number of threads.
    """

    # Default configuration
    DEFAULT_PROTOCOL_VERSION = DEFAULT_PROTOCOL_VERSION
    DEFAULT_PRESERVE_HOST = False
    DEFAULT_REWIND_STREAMS = True
    DEFAULT_MAX_MEMORY_SIZE = DEFAULT_MAX_MEMORY_SIZE

    def __init__(
        self,
        protocol_version: Optional[str] = None,
        preserve_host: Optional[bool] = None,
        rewind_streams: Optional[bool] = None,
        max_memory_size: Optional[int] = None,
    ) -> None:
        """
        Initialize HttpFactory.

        Args:
            protocol_version: Protocol version of created messages
            preserve_host: Default Host handling of Request.with_uri()
            rewind_streams: Leave new byte streams at offset 0 instead of
                            at the end of their content
            max_memory_size: Bytes a temporary stream keeps in memory
        """
        self._protocol_version = protocol_version or self.DEFAULT_PROTOCOL_VERSION
        self._preserve_host = (
            self.DEFAULT_PRESERVE_HOST if preserve_host is None else preserve_host
        )
        self._rewind_streams = (
            self.DEFAULT_REWIND_STREAMS if rewind_streams is None else rewind_streams
        )
        self._max_memory_size = max_memory_size or self.DEFAULT_MAX_MEMORY_SIZE

    # UriFactory

    def create_uri(self, uri: str = "") -> Uri:
        return Uri.parse(uri)

    # StreamFactory

    def create_stream(self, content: Union[StreamContent, BinaryIO] = b"") -> Stream:
        if isinstance(content, (bytes, bytearray, memoryview, str)):
            return Stream.from_bytes(
                content,
                rewind=self._rewind_streams,
                max_memory_size=self._max_memory_size,
            )
        return self.create_stream_from_resource(content)

    def create_stream_from_file(self, filename: str, mode: str = "rb") -> Stream:
        if mode not in _VALID_FILE_MODES:
            raise InvalidArgumentError(f"invalid file mode {mode!r}")
        if "b" not in mode:
            mode += "b"

        try:
            handle = open(os.fspath(filename), mode)
        except OSError as e:
            raise StreamError(f"Unable to open {filename} using mode {mode}: {e}", e) from e

        try:
            return Stream(handle)  # type: ignore[arg-type]
        except InvalidArgumentError:
            handle.close()
            raise

    def create_stream_from_resource(self, handle: BinaryIO) -> Stream:
        return Stream(handle)

    # UploadedFileFactory

    def create_uploaded_file(
        self,
        file: FileSource,
        size: Optional[int] = None,
        error: Union[UploadError, int] = UploadError.OK,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
    ) -> UploadedFile:
        return UploadedFile(
            file,
            size=size,
            error=error,
            client_filename=client_filename,
            client_media_type=client_media_type,
        )

    # RequestFactory

    def create_request(self, method: str, uri: Union[Uri, str]) -> Request:
        return Request(
            protocol_version=self._protocol_version,
            body=self.create_stream(),
            method=method,
            uri=uri if isinstance(uri, Uri) else self.create_uri(uri),
            preserve_host=self._preserve_host,
        )

    # ResponseFactory

    def create_response(self, code: int = 200, reason_phrase: str = "") -> Response:
        return Response(
            protocol_version=self._protocol_version,
            body=self.create_stream(),
            status_code=code,
            reason_phrase=reason_phrase,
        )

    # ServerRequestFactory

    def create_server_request(
        self,
        method: str,
        uri: Union[Uri, str],
        server_params: Optional[Mapping[str, Any]] = None,
    ) -> ServerRequest:
        return ServerRequest(
            protocol_version=self._protocol_version,
            body=self.create_stream(),
            method=method,
            uri=uri if isinstance(uri, Uri) else self.create_uri(uri),
            preserve_host=self._preserve_host,
            server_params=server_params or {},
        )

    def create_server_request_from_globals(
        self,
        environment: Union[EnvironmentSnapshot, EnvironmentProvider],
    ) -> ServerRequest:
        """
        Create a server request from an environment snapshot.

        Args:
            environment: The snapshot, or a provider asked for one

        Returns:
            New ServerRequest holding headers, cookies, query parameters,
            body, parsed body and the uploaded-file tree of the snapshot
        """
        if isinstance(environment, EnvironmentProvider):
            snapshot = environment.snapshot()
        elif isinstance(environment, EnvironmentSnapshot):
            snapshot = environment
        else:
            raise InvalidArgumentError(
                "environment must be an EnvironmentSnapshot or an EnvironmentProvider"
            )

        uri = uri_from_snapshot(snapshot)
        if snapshot.body is None or isinstance(snapshot.body, (bytes, bytearray)):
            # Received content is readable from its first byte
            body = Stream.from_bytes(
                snapshot.body or b"", max_memory_size=self._max_memory_size
            )
        else:
            body = self.create_stream_from_resource(snapshot.body)
        uploaded_files = normalize_files(snapshot.files)

        request = ServerRequest(
            protocol_version=protocol_version_from_snapshot(snapshot),
            headers=Headers(snapshot.headers),
            body=body,
            method=snapshot.method,
            uri=uri,
            target=request_target_from_snapshot(snapshot),
            preserve_host=self._preserve_host,
            server_params=snapshot.server_params,
            cookie_params=cookies_from_snapshot(snapshot),
            query_params=parse_query_params(uri.query),
            parsed_body=snapshot.parsed_body,
            uploaded_files=uploaded_files,
        )

        logger.debug(
            f"Server request created from snapshot: {request.method} {request.uri} "
            f"({len(uploaded_files)} uploaded file fields)"
        )
        return request
