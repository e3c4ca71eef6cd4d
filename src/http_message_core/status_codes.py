"""
Standard HTTP status codes and their reason phrases.
"""

from http import HTTPStatus
from typing import Dict

MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 599

REASON_PHRASES: Dict[int, str] = {status.value: status.phrase for status in HTTPStatus}


def get_reason_phrase(status_code: int) -> str:
    """Return the standard reason phrase for a status code, or '' if unknown."""
    return REASON_PHRASES.get(status_code, "")


def is_valid_status_code(status_code: int) -> bool:
    return (
        isinstance(status_code, int)
        and not isinstance(status_code, bool)
        and MIN_STATUS_CODE <= status_code <= MAX_STATUS_CODE
    )
