"""
Server-side request for http_message_core.

A ServerRequest is a Request as seen by the server that received it:
it adds the server parameters, cookies, query parameters, parsed body,
uploaded files and request-scoped attributes.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from typing_extensions import Self

from .exceptions import InvalidArgumentError
from .headers import HeaderInput, Headers
from .http_primitives import DEFAULT_PROTOCOL_VERSION, Request, empty_body, coerce_uri
from .streams import Stream
from .uploads import validate_uploaded_files
from .uri import Uri

ParsedBody = Any
_SCALARS = (str, bytes, bytearray, int, float, bool)


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


def _freeze(name: str, mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Copy a mapping into a read-only proxy."""
    if mapping is None:
        return _empty_mapping()
    if not isinstance(mapping, Mapping):
        raise InvalidArgumentError(f"{name} must be a mapping")
    return MappingProxyType(dict(mapping))


def validate_parsed_body(data: ParsedBody) -> ParsedBody:
    """Parsed bodies are None, mapping-like, sequence-like or plain objects."""
    if isinstance(data, _SCALARS):
        raise InvalidArgumentError(
            f"parsed body must be None, a mapping, a sequence or an object, "
            f"not {type(data).__name__}"
        )
    return data


@dataclass(frozen=True)
class ServerRequest(Request):
    """
    Immutable server-side HTTP request.

    server_params is fixed at construction and has no with_* method.
    The other mappings are copied into read-only proxies on every change.
    """

    server_params: Mapping[str, Any] = field(default_factory=_empty_mapping)
    cookie_params: Mapping[str, str] = field(default_factory=_empty_mapping)
    query_params: Mapping[str, Any] = field(default_factory=_empty_mapping)
    parsed_body: ParsedBody = None
    uploaded_files: Mapping[str, Any] = field(default_factory=_empty_mapping)
    attributes: Mapping[str, Any] = field(default_factory=_empty_mapping)

    def __post_init__(self) -> None:
        """Validate server request data after initialization."""
        super().__post_init__()

        for name in ("server_params", "cookie_params", "query_params", "attributes"):
            object.__setattr__(self, name, _freeze(name, getattr(self, name)))

        uploaded_files = _freeze("uploaded_files", self.uploaded_files)
        validate_uploaded_files(uploaded_files)
        object.__setattr__(self, "uploaded_files", uploaded_files)

        validate_parsed_body(self.parsed_body)

    @classmethod
    def create(  # type: ignore[override]
        cls,
        method: str,
        uri: Union[Uri, str],
        server_params: Optional[Mapping[str, Any]] = None,
        headers: Optional[HeaderInput] = None,
        body: Optional[Stream] = None,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
        preserve_host: bool = False,
    ) -> Self:
        """
        Create a ServerRequest.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: URI string or Uri instance
            server_params: Server parameters, frozen for the request lifetime
            headers: Optional mapping or list of (name, value) header pairs
            body: Optional body stream; an empty one is created otherwise
            protocol_version: HTTP protocol version
            preserve_host: Default Host handling of with_uri()

        Returns:
            New ServerRequest instance
        """
        return cls(
            protocol_version=protocol_version,
            headers=Headers(headers),
            body=body if body is not None else empty_body(),
            method=method,
            uri=coerce_uri(uri),
            preserve_host=preserve_host,
            server_params=_freeze("server_params", server_params),
        )

    def with_cookie_params(self, cookies: Mapping[str, str]) -> Self:
        """Create a new request with different cookies."""
        return replace(self, cookie_params=cookies)

    def with_query_params(self, query: Mapping[str, Any]) -> Self:
        """Create a new request with different query parameters."""
        return replace(self, query_params=query)

    def with_parsed_body(self, data: ParsedBody) -> Self:
        """Create a new request with a different parsed body."""
        return replace(self, parsed_body=data)

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> Self:
        """Create a new request with a different uploaded-file tree."""
        return replace(self, uploaded_files=uploaded_files)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> Self:
        """Create a new request with one attribute set."""
        return replace(self, attributes={**self.attributes, name: value})

    def without_attribute(self, name: str) -> Self:
        """Create a new request without an attribute; unknown names return self."""
        if name not in self.attributes:
            return self
        attributes = {key: value for key, value in self.attributes.items() if key != name}
        return replace(self, attributes=attributes)
