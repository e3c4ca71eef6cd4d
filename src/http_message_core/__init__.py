"""
http_message_core - HTTP message values and factories

A construction and value layer for HTTP messages: requests, responses,
server-side requests, URIs, byte streams and uploaded files, created
through small factory capabilities so that components can exchange
messages without depending on a concrete implementation.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .environment import EnvironmentProvider, EnvironmentSnapshot, UploadedFileDescriptor
from .exceptions import HTTPMessageError, IllegalStateError, InvalidArgumentError, StreamError
from .factories import (
    HttpFactory,
    RequestFactory,
    ResponseFactory,
    ServerRequestFactory,
    StreamFactory,
    UploadedFileFactory,
    UriFactory,
)
from .headers import Headers
from .http_primitives import Message, Request, Response
from .server_request import ServerRequest
from .streams import Stream
from .uploads import UploadError, UploadedFile
from .uri import Uri
from .wire import (
    HTTP11EnvironmentProvider,
    parse_server_request,
    serialize_request,
    to_h11_request,
    to_h11_response,
)

__all__ = [
    "EnvironmentProvider",
    "EnvironmentSnapshot",
    "UploadedFileDescriptor",
    "HTTPMessageError",
    "IllegalStateError",
    "InvalidArgumentError",
    "StreamError",
    "HttpFactory",
    "RequestFactory",
    "ResponseFactory",
    "ServerRequestFactory",
    "StreamFactory",
    "UploadedFileFactory",
    "UriFactory",
    "Headers",
    "Message",
    "Request",
    "Response",
    "ServerRequest",
    "Stream",
    "UploadError",
    "UploadedFile",
    "Uri",
    "HTTP11EnvironmentProvider",
    "parse_server_request",
    "serialize_request",
    "to_h11_request",
    "to_h11_response",
]
