"""
Unit tests for HTTP/1.1 wire conversion.

Tests h11 event conversion, request serialization and parsing raw
request bytes into server requests.
"""

import h11
import pytest

from http_message_core.exceptions import InvalidArgumentError
from http_message_core.factories import HttpFactory
from http_message_core.http_primitives import Request, Response
from http_message_core.streams import Stream
from http_message_core.wire import (
    HTTP11EnvironmentProvider,
    parse_server_request,
    serialize_request,
    to_h11_request,
    to_h11_response,
)


class TestH11Events:
    """Test conversion to h11 events."""

    def test_request_event(self) -> None:
        """Test converting a request with headers."""
        request = Request.create(
            "GET", "http://example.com/search?q=1", {"Host": "example.com", "Accept": "*/*"}
        )

        event = to_h11_request(request)

        assert isinstance(event, h11.Request)
        assert event.method == b"GET"
        assert event.target == b"/search?q=1"
        assert event.http_version == b"1.1"
        assert (b"accept", b"*/*") in list(event.headers)

    def test_request_without_host_rejected(self) -> None:
        """Test that h11 errors surface as InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError):
            to_h11_request(Request.create("GET", "/"))

    def test_request_with_http2_rejected(self) -> None:
        request = Request.create("GET", "/", {"Host": "example.com"}, protocol_version="2")

        with pytest.raises(InvalidArgumentError, match="HTTP/1.x"):
            to_h11_request(request)

    def test_response_event(self) -> None:
        """Test converting a final response."""
        event = to_h11_response(Response.create(404, headers={"Content-Length": "0"}))

        assert isinstance(event, h11.Response)
        assert event.status_code == 404
        assert event.reason == b"Not Found"

    def test_informational_response_event(self) -> None:
        """Test that 1xx responses become informational events."""
        event = to_h11_response(Response.create(101, headers={"Upgrade": "websocket"}))
        assert isinstance(event, h11.InformationalResponse)

    def test_unencodable_header_rejected(self) -> None:
        response = Response.create(200).with_header("X-Name", "名前")

        with pytest.raises(InvalidArgumentError):
            to_h11_response(response)


class TestSerializeRequest:
    """Test rendering requests to bytes."""

    def test_with_body(self) -> None:
        """Test that Host and Content-Length are added."""
        request = Request.create(
            "POST",
            "http://example.com/submit?x=1",
            {"Content-Type": "text/plain"},
            Stream.from_bytes(b"hello"),
        )

        data = serialize_request(request)

        assert data == (
            b"POST /submit?x=1 HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 5\r\n"
            b"\r\n"
            b"hello"
        )
        assert not request.has_header("Content-Length")

    def test_body_is_sent_from_start(self) -> None:
        """Test that a partially read body is rewound."""
        body = Stream.from_bytes(b"hello")
        body.read(3)

        data = serialize_request(Request.create("PUT", "http://example.com/", body=body))
        assert data.endswith(b"\r\n\r\nhello")

    def test_existing_host_is_kept(self) -> None:
        request = Request.create("GET", "http://example.com/", {"Host": "virtual.example.com"})
        assert b"Host: virtual.example.com\r\n" in serialize_request(request)

    def test_unknown_size_is_chunked(self, non_seekable_reader) -> None:
        """Test that a body of unknown size uses chunked encoding."""
        request = Request.create(
            "POST", "http://example.com/", body=Stream(non_seekable_reader(b"abc"))
        )

        data = serialize_request(request)

        assert b"Transfer-Encoding: chunked\r\n" in data
        assert data.endswith(b"\r\n\r\n3\r\nabc\r\n0\r\n\r\n")

    def test_empty_body(self) -> None:
        data = serialize_request(Request.create("GET", "http://example.com/"))
        assert data == b"GET / HTTP/1.1\r\nHost: example.com\r\n\r\n"

    def test_mismatched_content_length(self) -> None:
        """Test that a declared length that does not match the body is rejected."""
        request = Request.create(
            "POST",
            "http://example.com/",
            {"Content-Length": "10"},
            Stream.from_bytes(b"short"),
        )

        with pytest.raises(InvalidArgumentError):
            serialize_request(request)

    def test_http10_rejected(self) -> None:
        """Test that requests other than HTTP/1.1 are rejected up front."""
        request = HttpFactory(protocol_version="1.0").create_request(
            "GET", "http://example.com/"
        )

        with pytest.raises(InvalidArgumentError, match="only HTTP/1.1"):
            serialize_request(request)


class TestParseServerRequest:
    """Test parsing raw request bytes."""

    RAW_REQUEST = (
        b"POST /submit?tag=a&tag=b HTTP/1.1\r\n"
        b"Host: example.com:8080\r\n"
        b"Content-Length: 5\r\n"
        b"Cookie: session=abc123; theme=dark\r\n"
        b"X-Trace: one\r\n"
        b"x-trace: two\r\n"
        b"\r\n"
        b"hello"
    )

    def test_parse(self) -> None:
        """Test that every part of the request is extracted."""
        request = parse_server_request(self.RAW_REQUEST)

        assert request.method == "POST"
        assert str(request.uri) == "http://example.com:8080/submit?tag=a&tag=b"
        assert request.protocol_version == "1.1"
        assert request.query_params == {"tag": ["a", "b"]}
        assert request.cookie_params == {"session": "abc123", "theme": "dark"}
        assert request.get_header("x-trace") == ["one", "two"]
        assert request.body.read() == b"hello"

    def test_chunked_body(self) -> None:
        data = (
            b"POST /upload HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n"
        )
        assert parse_server_request(data).body.read() == b"hello world"

    def test_scheme_and_factory(self) -> None:
        """Test the connection scheme and a configured factory."""
        request = parse_server_request(
            self.RAW_REQUEST, factory=HttpFactory(preserve_host=True), scheme="https"
        )

        assert request.uri.scheme == "https"
        assert request.preserve_host is True

    def test_serialized_request_parses_back(self) -> None:
        """Test that a serialized request is read back unchanged."""
        original = Request.create(
            "PATCH", "http://example.com/items/1", {"X-Id": "1"}, Stream.from_bytes(b"{}")
        )

        request = parse_server_request(serialize_request(original))

        assert request.method == "PATCH"
        assert request.uri == original.uri
        assert request.get_header("x-id") == ["1"]
        assert request.body.read() == b"{}"

    def test_malformed_cookie_is_ignored(self) -> None:
        data = b'GET / HTTP/1.1\r\nHost: example.com\r\nCookie: a="unterminated\r\n\r\n'
        request = parse_server_request(data)

        assert request.method == "GET"

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"NOT A REQUEST\r\n\r\n",
            b"GET / HTTP/1.1\r\n",
            b"GET / HTTP/1.1\r\n\r\n",
            b"POST / HTTP/1.1\r\nHost: example.com\r\nContent-Length: 10\r\n\r\nabc",
        ],
    )
    def test_invalid_data(self, data: bytes) -> None:
        """Test that malformed or incomplete requests are rejected."""
        with pytest.raises(InvalidArgumentError):
            parse_server_request(data)

    def test_double_slash_target_keeps_host(self) -> None:
        """Test that a target starting with two slashes cannot replace the host."""
        request = parse_server_request(
            b"GET //evil.example/x HTTP/1.1\r\nHost: example.com\r\n\r\n"
        )

        assert request.uri.host == "example.com"
        assert request.uri.path == "//evil.example/x"
        assert request.request_target == "//evil.example/x"

    def test_asterisk_target(self) -> None:
        request = parse_server_request(b"OPTIONS * HTTP/1.1\r\nHost: example.com\r\n\r\n")

        assert request.method == "OPTIONS"
        assert request.request_target == "*"
        assert request.uri.host == "example.com"

    def test_provider_snapshot(self) -> None:
        """Test the snapshot produced from raw bytes."""
        snapshot = HTTP11EnvironmentProvider(self.RAW_REQUEST).snapshot()

        assert snapshot.method == "POST"
        assert snapshot.target == "/submit?tag=a&tag=b"
        assert snapshot.body == b"hello"
        assert snapshot.scheme == "http"
        assert ("Host", "example.com:8080") in snapshot.headers
