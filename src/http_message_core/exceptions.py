"""
Custom exceptions for http_message_core.

This module defines the exception hierarchy used throughout
the library. Each error kind also derives from the closest
builtin exception so callers can catch either.
"""

from typing import Optional


class HTTPMessageError(Exception):
    """Base exception for all http_message_core errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidArgumentError(HTTPMessageError, ValueError):
    """Raised when a value object is constructed from invalid input."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Invalid argument: {message}", cause)


class IllegalStateError(HTTPMessageError, RuntimeError):
    """Raised when an object is used after a one-shot transition (detach, move)."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Illegal state: {message}", cause)


class StreamError(HTTPMessageError, OSError):
    """Raised when the storage behind a stream or uploaded file fails."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Stream error: {message}", cause)
