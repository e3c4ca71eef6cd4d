"""
Pytest configuration for http_message_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

import io
from typing import Optional

import pytest

from http_message_core.environment import EnvironmentProvider, EnvironmentSnapshot
from http_message_core.factories import HttpFactory
from http_message_core.streams import Stream


class NonSeekableReader(io.RawIOBase):
    """Readable binary handle that cannot seek, like a pipe or socket."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        chunk = self._buffer.read(len(b))
        b[: len(chunk)] = chunk
        return len(chunk)


class WriteOnlyHandle(io.RawIOBase):
    """Binary handle that can only be written."""

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        return len(b)


class StaticEnvironmentProvider(EnvironmentProvider):
    """Environment provider returning a fixed snapshot."""

    def __init__(self, snapshot: EnvironmentSnapshot) -> None:
        self.snapshot_value = snapshot
        self.calls = 0

    def snapshot(self) -> EnvironmentSnapshot:
        self.calls += 1
        return self.snapshot_value


@pytest.fixture
def factory():
    """Create a factory with default configuration."""
    return HttpFactory()


@pytest.fixture
def non_seekable_reader():
    """Create non-seekable readable handles for testing."""
    def _create(data: bytes = b"") -> NonSeekableReader:
        return NonSeekableReader(data)
    return _create


@pytest.fixture
def write_only_handle():
    """Create a write-only handle for testing."""
    return WriteOnlyHandle()


@pytest.fixture
def text_stream():
    """Create a stream holding a short text."""
    def _create(content: bytes = b"Hello, World!", rewind: bool = True) -> Stream:
        return Stream.from_bytes(content, rewind=rewind)
    return _create


@pytest.fixture
def upload_source(tmp_path):
    """Create a temporary file standing in for an uploaded file."""
    def _create(content: bytes = b"uploaded content", name: str = "upload.tmp") -> str:
        path = tmp_path / name
        path.write_bytes(content)
        return str(path)
    return _create


@pytest.fixture
def sample_headers():
    """Sample headers for testing."""
    return [
        ("Content-Type", "application/json"),
        ("Authorization", "Bearer token123"),
        ("User-Agent", "http_message_core/0.1.0"),
        ("Accept", "*/*"),
    ]


@pytest.fixture
def sample_snapshot(upload_source):
    """Sample environment snapshot for testing."""
    def _create(**overrides: Optional[object]) -> EnvironmentSnapshot:
        values = {
            "method": "POST",
            "target": "/upload?page=2",
            "headers": [
                ("Host", "example.com:8080"),
                ("Content-Type", "multipart/form-data"),
                ("Accept", "text/html"),
                ("Accept", "application/json"),
            ],
            "cookies": [("session", "abc123")],
            "server_params": {"SERVER_PROTOCOL": "HTTP/1.1", "REMOTE_ADDR": "127.0.0.1"},
            "body": b"raw body",
            "parsed_body": {"title": "Report"},
            "files": {
                "avatar": {
                    "tmp_name": upload_source(b"png data", "avatar.tmp"),
                    "size": 8,
                    "error": 0,
                    "name": "me.png",
                    "type": "image/png",
                },
            },
        }
        values.update(overrides)
        return EnvironmentSnapshot(**values)
    return _create


@pytest.fixture
def static_provider():
    """Create an environment provider for a fixed snapshot."""
    def _create(snapshot: EnvironmentSnapshot) -> StaticEnvironmentProvider:
        return StaticEnvironmentProvider(snapshot)
    return _create
