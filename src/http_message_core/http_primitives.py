"""
HTTP primitives for http_message_core.

This module defines the core message value objects: Message and its
Request and Response specializations. All classes are immutable; every
with_* method returns a new instance and leaves the receiver untouched.
"""

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Union

from typing_extensions import Self

from .exceptions import InvalidArgumentError
from .headers import HeaderInput, Headers, HeaderValue, is_token
from .status_codes import get_reason_phrase, is_valid_status_code
from .streams import Stream
from .uri import Uri

DEFAULT_PROTOCOL_VERSION = "1.1"
SUPPORTED_PROTOCOL_VERSIONS = ("1.0", "1.1", "2", "2.0", "3")

_WHITESPACE_RE = re.compile(r"\s")
_LINE_BREAK_RE = re.compile(r"[\r\n]")


def empty_body() -> Stream:
    return Stream.from_bytes()


def coerce_uri(uri: Union[Uri, str]) -> Uri:
    """Accept a Uri or parse a string into one."""
    if isinstance(uri, Uri):
        return uri
    if isinstance(uri, str):
        return Uri.parse(uri)
    raise InvalidArgumentError("uri must be a string or a Uri instance")


@dataclass(frozen=True)
class Message:
    """
    Immutable HTTP message.

    Holds the protocol version, the headers and the body stream shared
    by requests and responses. The body is the only mutable part: a
    message and the copies derived from it share the same Stream until
    one of them replaces it.
    """

    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    headers: Headers = field(default_factory=Headers)
    body: Stream = field(default_factory=empty_body)

    def __post_init__(self) -> None:
        """Validate message data after initialization."""
        if self.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            raise InvalidArgumentError(
                f"unsupported protocol version {self.protocol_version!r}"
            )

        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

        if not isinstance(self.body, Stream):
            raise InvalidArgumentError("body must be a Stream")

    def get_header(self, name: str) -> List[str]:
        """Get all values of a header (case-insensitive), or an empty list."""
        return self.headers.get_list(name)

    def get_header_line(self, name: str) -> str:
        """Get the comma-separated values of a header, or an empty string."""
        return self.headers.get_line(name)

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return name in self.headers

    def with_header(self, name: str, value: HeaderValue) -> Self:
        """Create a new message where the header holds exactly value."""
        return replace(self, headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValue) -> Self:
        """Create a new message with value appended to the header."""
        return replace(self, headers=self.headers.with_added_header(name, value))

    def without_header(self, name: str) -> Self:
        """Create a new message without the header."""
        return replace(self, headers=self.headers.without_header(name))

    def with_body(self, body: Stream) -> Self:
        """Create a new message with a different body stream."""
        return replace(self, body=body)

    def with_protocol_version(self, version: str) -> Self:
        """Create a new message with a different protocol version."""
        return replace(self, protocol_version=version)


@dataclass(frozen=True)
class Request(Message):
    """
    Immutable HTTP request representation.

    target overrides the request-target derived from the URI. When
    preserve_host is set, with_uri() leaves an existing Host header alone
    unless told otherwise.
    """

    method: str = "GET"
    uri: Uri = field(default_factory=Uri)
    target: Optional[str] = None
    preserve_host: bool = False

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        super().__post_init__()

        if not is_token(self.method):
            raise InvalidArgumentError(f"{self.method!r} is not a valid HTTP method")

        object.__setattr__(self, "uri", coerce_uri(self.uri))

        if self.target is not None and (
            not isinstance(self.target, str)
            or not self.target
            or _WHITESPACE_RE.search(self.target)
        ):
            raise InvalidArgumentError(
                "request target must be a non-empty string without whitespace"
            )

    @classmethod
    def create(
        cls,
        method: str,
        uri: Union[Uri, str],
        headers: Optional[HeaderInput] = None,
        body: Optional[Stream] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
        preserve_host: bool = False,
    ) -> Self:
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: URI string or Uri instance
            headers: Optional mapping or list of (name, value) header pairs
            body: Optional body stream; an empty one is created otherwise
            protocol_version: HTTP protocol version
            preserve_host: Default Host handling of with_uri()

        Returns:
            New Request instance
        """
        return cls(
            protocol_version=protocol_version,
            headers=Headers(headers),
            body=body if body is not None else empty_body(),
            method=method,
            uri=coerce_uri(uri),
            preserve_host=preserve_host,
        )

    @property
    def request_target(self) -> str:
        """Get the request-target, origin-form unless overridden."""
        if self.target is not None:
            return self.target

        target = self.uri.path or "/"
        if self.uri.query:
            target = f"{target}?{self.uri.query}"
        return target

    def with_request_target(self, target: str) -> Self:
        """Create a new request with a specific request-target."""
        return replace(self, target=target)

    def with_method(self, method: str) -> Self:
        """Create a new request with a different method."""
        return replace(self, method=method)

    def with_uri(self, uri: Union[Uri, str], preserve_host: Optional[bool] = None) -> Self:
        """
        Create a new request with a different URI.

        The Host header is replaced by the host of the new URI. With host
        preservation it is only set when the request has no Host value.

        Args:
            uri: URI string or Uri instance
            preserve_host: Overrides the preserve_host option of this request
        """
        uri = coerce_uri(uri)
        preserve = self.preserve_host if preserve_host is None else preserve_host

        headers = self.headers
        if uri.host and (not preserve or not self.get_header_line("Host")):
            host = uri.host if uri.port is None else f"{uri.host}:{uri.port}"
            headers = headers.with_header("Host", host, first=True)

        return replace(self, uri=uri, headers=headers)


@dataclass(frozen=True)
class Response(Message):
    """
    Immutable HTTP response representation.

    An empty reason phrase is replaced by the standard phrase of the
    status code, if there is one.
    """

    status_code: int = 200
    reason_phrase: str = ""

    def __post_init__(self) -> None:
        """Validate response data after initialization."""
        super().__post_init__()

        if not is_valid_status_code(self.status_code):
            raise InvalidArgumentError(
                f"status code must be an integer between 100 and 599, got {self.status_code!r}"
            )

        if not isinstance(self.reason_phrase, str) or _LINE_BREAK_RE.search(self.reason_phrase):
            raise InvalidArgumentError("reason phrase must be a single-line string")

        if not self.reason_phrase:
            object.__setattr__(self, "reason_phrase", get_reason_phrase(self.status_code))

    @classmethod
    def create(
        cls,
        status_code: int = 200,
        reason_phrase: str = "",
        headers: Optional[HeaderInput] = None,
        body: Optional[Stream] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ) -> Self:
        """
        Create a Response with proper validation.

        Args:
            status_code: HTTP status code
            reason_phrase: Reason phrase; the standard one when empty
            headers: Optional mapping or list of (name, value) header pairs
            body: Optional body stream; an empty one is created otherwise
            protocol_version: HTTP protocol version

        Returns:
            New Response instance
        """
        return cls(
            protocol_version=protocol_version,
            headers=Headers(headers),
            body=body if body is not None else empty_body(),
            status_code=status_code,
            reason_phrase=reason_phrase,
        )

    def with_status(self, status_code: int, reason_phrase: str = "") -> Self:
        """Create a new response with a different status."""
        return replace(self, status_code=status_code, reason_phrase=reason_phrase)
