"""
HTTP/1.1 wire conversion for http_message_core.

This module connects the message value objects to h11 so that a
transport layer can send and receive them. It never touches a socket:
requests are rendered to bytes and raw bytes are turned into server
requests.
"""

import logging
from http.cookies import CookieError, SimpleCookie
from typing import List, Optional, Tuple, Union

import h11

from .environment import EnvironmentProvider, EnvironmentSnapshot
from .exceptions import InvalidArgumentError
from .factories import HttpFactory, ServerRequestFactory
from .http_primitives import Message, Request, Response
from .server_request import ServerRequest

logger = logging.getLogger(__name__)

H11Headers = List[Tuple[bytes, bytes]]

# Versions an h11 event can carry; serialize_request writes 1.1 only
WIRE_PROTOCOL_VERSIONS = ("1.0", "1.1")


def _encode_headers(message: Message) -> H11Headers:
    try:
        return [
            (name.encode("ascii"), value.encode("latin-1"))
            for name, value in message.headers.raw_items()
        ]
    except UnicodeEncodeError as e:
        raise InvalidArgumentError(f"header cannot be encoded for HTTP/1.1: {e}", e) from e


def _wire_version(message: Message) -> bytes:
    if message.protocol_version not in WIRE_PROTOCOL_VERSIONS:
        raise InvalidArgumentError(
            f"protocol version {message.protocol_version} is not HTTP/1.x"
        )
    return message.protocol_version.encode("ascii")


def to_h11_request(request: Request) -> h11.Request:
    """
    Convert a Request to an h11 Request event.

    Raises:
        InvalidArgumentError: If h11 rejects the request
    """
    try:
        return h11.Request(
            method=request.method.encode("ascii"),
            target=request.request_target.encode("ascii"),
            headers=_encode_headers(request),
            http_version=_wire_version(request),
        )
    except (h11.LocalProtocolError, UnicodeEncodeError) as e:
        raise InvalidArgumentError(f"request cannot be sent as HTTP/1.1: {e}", e) from e


def to_h11_response(
    response: Response,
) -> Union[h11.InformationalResponse, h11.Response]:
    """
    Convert a Response to an h11 event.

    1xx responses become InformationalResponse events.

    Raises:
        InvalidArgumentError: If h11 rejects the response
    """
    event_type = h11.InformationalResponse if response.status_code < 200 else h11.Response
    try:
        return event_type(
            status_code=response.status_code,
            headers=_encode_headers(response),
            reason=response.reason_phrase.encode("latin-1"),
            http_version=_wire_version(response),
        )
    except (h11.LocalProtocolError, UnicodeEncodeError) as e:
        raise InvalidArgumentError(f"response cannot be sent as HTTP/1.1: {e}", e) from e


def _with_framing(request: Request) -> Request:
    """Add Host and body framing headers the request does not carry yet."""
    request = request.with_uri(request.uri, preserve_host=True)

    if request.has_header("Content-Length") or request.has_header("Transfer-Encoding"):
        return request

    size = request.body.size
    if size is None:
        return request.with_header("Transfer-Encoding", "chunked")
    if size > 0:
        return request.with_header("Content-Length", str(size))
    return request


def serialize_request(request: Request) -> bytes:
    """
    Render a request, including its body, as HTTP/1.1 bytes.

    The body is sent from its beginning when it is seekable. Only 1.1
    requests can be rendered; h11 writes no other version.

    Raises:
        InvalidArgumentError: If the request cannot be expressed in HTTP/1.1
    """
    if request.protocol_version != "1.1":
        raise InvalidArgumentError(
            f"only HTTP/1.1 requests can be serialized, not {request.protocol_version}"
        )

    request = _with_framing(request)
    connection = h11.Connection(our_role=h11.CLIENT)

    try:
        data = connection.send(to_h11_request(request)) or b""
        body = request.body
        if body.seekable:
            body.rewind()
        for chunk in body.iter_chunks():
            data += connection.send(h11.Data(data=chunk)) or b""
        data += connection.send(h11.EndOfMessage()) or b""
    except h11.LocalProtocolError as e:
        raise InvalidArgumentError(f"request cannot be sent as HTTP/1.1: {e}", e) from e

    logger.debug(f"Serialized {request.method} {request.request_target} ({len(data)} bytes)")
    return data


class HTTP11EnvironmentProvider(EnvironmentProvider):
    """
    Environment provider reading one raw HTTP/1.1 request.

    The bytes must hold the complete request, body included.
    """

    def __init__(self, data: bytes, scheme: str = "http") -> None:
        """
        Initialize HTTP11EnvironmentProvider.

        Args:
            data: Raw request bytes as received from the client
            scheme: Scheme of the connection the request came in on
        """
        self._data = data
        self._scheme = scheme

    def snapshot(self) -> EnvironmentSnapshot:
        """
        Parse the raw request.

        Raises:
            InvalidArgumentError: If the data is malformed or incomplete
        """
        connection = h11.Connection(our_role=h11.SERVER)
        connection.receive_data(self._data)
        connection.receive_data(b"")

        request_event: Optional[h11.Request] = None
        chunks: List[bytes] = []
        while True:
            try:
                event = connection.next_event()
            except h11.RemoteProtocolError as e:
                raise InvalidArgumentError(f"malformed HTTP/1.1 request: {e}", e) from e

            if isinstance(event, h11.Request):
                request_event = event
            elif isinstance(event, h11.Data):
                chunks.append(bytes(event.data))
            elif isinstance(event, h11.EndOfMessage):
                break
            else:
                raise InvalidArgumentError("incomplete HTTP/1.1 request")

        if request_event is None:
            raise InvalidArgumentError("HTTP/1.1 data holds no request")

        headers = [
            (name.decode("ascii"), value.decode("latin-1"))
            for name, value in request_event.headers.raw_items()
        ]
        target = request_event.target.decode("ascii")

        cookies = SimpleCookie()
        for name, value in headers:
            if name.lower() != "cookie":
                continue
            try:
                cookies.load(value)
            except CookieError as e:
                logger.warning(f"Ignoring malformed Cookie header {value!r}: {e}")

        logger.debug(f"Parsed HTTP/1.1 request {request_event.method!r} {target}")
        return EnvironmentSnapshot(
            method=request_event.method.decode("ascii"),
            target=target,
            headers=headers,
            cookies={name: morsel.value for name, morsel in cookies.items()},
            body=b"".join(chunks),
            scheme=self._scheme,
            protocol_version=request_event.http_version.decode("ascii"),
        )


def parse_server_request(
    data: bytes,
    factory: Optional[ServerRequestFactory] = None,
    scheme: str = "http",
) -> ServerRequest:
    """
    Build a ServerRequest from raw HTTP/1.1 request bytes.

    Args:
        data: The complete raw request
        factory: Server request factory to use; HttpFactory() by default
        scheme: Scheme of the connection the request came in on

    Raises:
        InvalidArgumentError: If the data is not a complete, valid request
    """
    factory = factory or HttpFactory()
    return factory.create_server_request_from_globals(
        HTTP11EnvironmentProvider(data, scheme=scheme)
    )
