"""
Environment snapshots for http_message_core.

An EnvironmentSnapshot is the explicit, caller-owned description of an
inbound request as a hosting environment received it. Producing one
(from WSGI, CGI, a socket server...) is left to an EnvironmentProvider;
this module only turns snapshot parts into message building blocks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    BinaryIO,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)
from urllib.parse import parse_qsl

from .exceptions import InvalidArgumentError
from .uploads import UploadError, UploadedFile
from .uri import Uri

# Keys of a field-major upload descriptor mapping
FILE_DESCRIPTOR_FIELDS = ("tmp_name", "size", "error", "name", "type")

QueryParams = Dict[str, Union[str, List[str]]]

# Request-target forms
ORIGIN_FORM = "origin"
ABSOLUTE_FORM = "absolute"
AUTHORITY_FORM = "authority"
ASTERISK_FORM = "asterisk"


@dataclass(frozen=True)
class UploadedFileDescriptor:
    """Raw description of one uploaded file as left by the hosting environment."""

    path: Optional[str]
    size: Optional[int] = None
    error: int = UploadError.OK
    client_filename: Optional[str] = None
    client_media_type: Optional[str] = None

    def to_uploaded_file(self) -> UploadedFile:
        return UploadedFile(
            self.path,
            size=self.size,
            error=self.error,
            client_filename=self.client_filename,
            client_media_type=self.client_media_type,
        )


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """
    Inbound request context, captured by the caller.

    Attributes:
        method: Request method
        target: Raw request-target in any of the four RFC 7230 forms
        headers: (name, value) pairs in received order
        cookies: Cookie mapping or (name, value) pairs
        query_string: Raw query string, used when target has none
        server_params: Server parameters (e.g. a WSGI/CGI environ)
        body: Raw body as bytes or a readable binary handle
        parsed_body: Body already parsed by the environment, if any
        files: Nested uploaded-file descriptors
        scheme: Scheme used when target is not absolute
        protocol_version: HTTP version, unless SERVER_PROTOCOL says otherwise
    """

    method: str = "GET"
    target: str = "/"
    headers: Sequence[Tuple[str, str]] = ()
    cookies: Union[Mapping[str, str], Sequence[Tuple[str, str]]] = ()
    query_string: str = ""
    server_params: Mapping[str, Any] = field(default_factory=dict)
    body: Union[bytes, BinaryIO, None] = None
    parsed_body: Any = None
    files: Mapping[str, Any] = field(default_factory=dict)
    scheme: str = "http"
    protocol_version: str = "1.1"


class EnvironmentProvider(ABC):
    """
    Interface for producers of environment snapshots.

    Implementations translate a hosting environment into an
    EnvironmentSnapshot. They are never consulted implicitly.
    """

    @abstractmethod
    def snapshot(self) -> EnvironmentSnapshot:
        """
        Capture the current inbound request.

        Returns:
            A snapshot owned by the caller.
        """
        pass


def parse_query_params(query: str) -> QueryParams:
    """
    Parse a query string into a mapping.

    Repeated keys collect their values into a list; blank values are kept.
    """
    params: QueryParams = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key not in params:
            params[key] = value
            continue
        existing = params[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


def cookies_from_snapshot(snapshot: EnvironmentSnapshot) -> Dict[str, str]:
    cookies = snapshot.cookies
    pairs = cookies.items() if isinstance(cookies, Mapping) else cookies
    return {name: value for name, value in pairs}


def protocol_version_from_snapshot(snapshot: EnvironmentSnapshot) -> str:
    server_protocol = snapshot.server_params.get("SERVER_PROTOCOL", "")
    if isinstance(server_protocol, str) and server_protocol.startswith("HTTP/"):
        return server_protocol[len("HTTP/"):]
    return snapshot.protocol_version


def _find_header(headers: Sequence[Tuple[str, str]], name: str) -> Optional[str]:
    for header_name, value in headers:
        if header_name.lower() == name:
            return value
    return None


def _split_host(host_header: str) -> Tuple[str, Optional[int]]:
    if host_header.startswith("["):
        host, _, rest = host_header.partition("]")
        host += "]"
        port_text = rest[1:] if rest.startswith(":") else ""
    else:
        host, _, port_text = host_header.partition(":")

    if not port_text:
        return host, None
    if not port_text.isdigit():
        raise InvalidArgumentError(f"invalid port in host {host_header!r}")
    return host, int(port_text)


def target_form(target: str) -> str:
    """Classify a raw request-target (RFC 7230, section 5.3)."""
    if target == "*":
        return ASTERISK_FORM
    if not target or target.startswith("/"):
        return ORIGIN_FORM
    if "://" in target:
        return ABSOLUTE_FORM
    return AUTHORITY_FORM


def request_target_from_snapshot(snapshot: EnvironmentSnapshot) -> Optional[str]:
    """Return the raw target when the request URI cannot reproduce it, else None."""
    if target_form(snapshot.target) in (ASTERISK_FORM, AUTHORITY_FORM):
        return snapshot.target
    return None


def uri_from_snapshot(snapshot: EnvironmentSnapshot) -> Uri:
    """
    Build the request URI from the target, Host header and server params.

    An absolute-form target is used as is and an authority-form target
    supplies the host. Otherwise the host comes from the Host header,
    falling back to SERVER_NAME and SERVER_PORT. An origin-form target is
    always a path, even when it starts with two slashes.

    Raises:
        InvalidArgumentError: If the target or the host is invalid
    """
    form = target_form(snapshot.target)

    if form == ABSOLUTE_FORM:
        target = Uri.parse(snapshot.target)
        if not target.host:
            raise InvalidArgumentError(
                f"absolute-form request target {snapshot.target!r} has no host"
            )
        return target.with_query(target.query or snapshot.query_string)

    path, query = "", snapshot.query_string
    if form == ORIGIN_FORM:
        path, separator, target_query = (snapshot.target or "/").partition("?")
        if separator and target_query:
            query = target_query

    params = snapshot.server_params
    port: Optional[int] = None
    host_header = _find_header(snapshot.headers, "host")
    if form == AUTHORITY_FORM:
        host, port = _split_host(snapshot.target)
    elif host_header:
        host, port = _split_host(host_header)
    else:
        host = str(params.get("SERVER_NAME") or params.get("SERVER_ADDR") or "")
        server_port = str(params.get("SERVER_PORT") or "")
        if host and server_port.isdigit():
            port = int(server_port)

    if not host:
        return Uri(path=path, query=query)

    scheme = snapshot.scheme
    https = str(params.get("HTTPS", "")).lower()
    if https and https != "off":
        scheme = "https"

    return Uri(scheme=scheme, host=host, port=port, path=path, query=query)


def normalize_files(files: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Turn nested uploaded-file descriptors into a tree of UploadedFile.

    Leaves may be UploadedFile instances, UploadedFileDescriptor instances
    or descriptor mappings with a "tmp_name" key. The nesting of mappings
    and sequences is preserved.

    Raises:
        InvalidArgumentError: On a leaf that is none of the above
    """
    if not isinstance(files, Mapping):
        raise InvalidArgumentError("uploaded files descriptor must be a mapping")
    return {key: _normalize_node(value) for key, value in files.items()}


def _normalize_node(node: Any) -> Any:
    if isinstance(node, UploadedFile):
        return node
    if isinstance(node, UploadedFileDescriptor):
        return node.to_uploaded_file()
    if isinstance(node, Mapping):
        if "tmp_name" in node:
            return _from_descriptor(node)
        return {key: _normalize_node(value) for key, value in node.items()}
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray)):
        return [_normalize_node(value) for value in node]
    raise InvalidArgumentError(
        f"invalid value in uploaded files descriptor: {type(node).__name__}"
    )


def _from_descriptor(descriptor: Mapping[str, Any]) -> Any:
    tmp_name = descriptor["tmp_name"]
    if isinstance(tmp_name, (Mapping, list, tuple)):
        return _from_nested_descriptor(descriptor)

    return UploadedFile(
        tmp_name,
        size=descriptor.get("size"),
        error=descriptor.get("error", UploadError.OK),
        client_filename=descriptor.get("name"),
        client_media_type=descriptor.get("type"),
    )


def _from_nested_descriptor(descriptor: Mapping[str, Any]) -> Any:
    """Split a field-major descriptor (each field nested alike) into one descriptor per file."""
    tmp_names = descriptor["tmp_name"]
    keys = list(tmp_names.keys()) if isinstance(tmp_names, Mapping) else range(len(tmp_names))

    try:
        children = {
            key: _from_descriptor(
                {
                    name: descriptor[name][key]
                    for name in FILE_DESCRIPTOR_FIELDS
                    if name in descriptor
                }
            )
            for key in keys
        }
    except (KeyError, IndexError, TypeError) as e:
        raise InvalidArgumentError(
            "fields of a nested uploaded file descriptor do not line up", e
        ) from e

    if isinstance(tmp_names, Mapping):
        return children
    return [children[key] for key in keys]
