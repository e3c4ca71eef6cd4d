"""
Header storage for http_message_core.

Headers keep the case of a name as it was first inserted and answer
lookups case-insensitively. The collection is immutable; every change
returns a new Headers instance.
"""

import re
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .exceptions import InvalidArgumentError

# RFC 7230, section 3.2.6
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_FORBIDDEN_VALUE_RE = re.compile(r"[\r\n\x00]")

ScalarHeaderValue = Union[str, int, float]
HeaderValue = Union[ScalarHeaderValue, Sequence[ScalarHeaderValue]]
HeaderInput = Union[
    Mapping[str, HeaderValue],
    Iterable[Tuple[str, HeaderValue]],
]


def is_token(value: str) -> bool:
    """Check if a string is an RFC 7230 token."""
    return isinstance(value, str) and _TOKEN_RE.match(value) is not None


def validate_header_name(name: str) -> str:
    """Return the name unchanged, or raise InvalidArgumentError."""
    if not isinstance(name, str):
        raise InvalidArgumentError("header name must be a string")
    if not is_token(name):
        raise InvalidArgumentError(f"{name!r} is not a valid header name")
    return name


def normalize_header_value(value: HeaderValue) -> Tuple[str, ...]:
    """
    Turn a header value into a tuple of strings.

    Numbers are converted with str(); the content of string values is
    never changed, only checked for CR, LF and NUL characters.
    """
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        values: Sequence[ScalarHeaderValue] = [value]
    elif isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        values = value
        if not values:
            raise InvalidArgumentError("header value can not be an empty list")
    else:
        raise InvalidArgumentError(
            f"header value must be a string, number or list of those, "
            f"not {type(value).__name__}"
        )

    normalized = []
    for item in values:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise InvalidArgumentError(
                f"header values must be strings or numbers, not {type(item).__name__}"
            )
        text = str(item)
        if _FORBIDDEN_VALUE_RE.search(text):
            raise InvalidArgumentError(f"{text!r} is not a valid header value")
        normalized.append(text)
    return tuple(normalized)


class Headers(Mapping[str, Tuple[str, ...]]):
    """
    Immutable, case-insensitive header collection.

    Iteration yields canonical names in insertion order. Indexing and
    membership tests ignore case.
    """

    __slots__ = ("_store", "_index")

    def __init__(self, headers: Optional[HeaderInput] = None) -> None:
        self._store: Dict[str, Tuple[str, ...]] = {}
        self._index: Dict[str, str] = {}

        if headers is None:
            return

        pairs = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in pairs:
            self._add(validate_header_name(name), normalize_header_value(value))

    def _add(self, name: str, values: Tuple[str, ...]) -> None:
        canonical = self._index.setdefault(name.lower(), name)
        self._store[canonical] = self._store.get(canonical, ()) + values

    def _copy(self) -> "Headers":
        headers = Headers()
        headers._store = dict(self._store)
        headers._index = dict(self._index)
        return headers

    def __getitem__(self, name: str) -> Tuple[str, ...]:
        if isinstance(name, str):
            canonical = self._index.get(name.lower())
            if canonical is not None:
                return self._store[canonical]
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"Headers({self._store!r})"

    def get_list(self, name: str) -> List[str]:
        """Return all values of a header, or an empty list if missing."""
        return list(self.get(name, ()))

    def get_line(self, name: str) -> str:
        """Return all values of a header joined by a comma."""
        return ", ".join(self.get(name, ()))

    def with_header(self, name: str, value: HeaderValue, first: bool = False) -> "Headers":
        """
        Create new headers where name holds exactly value.

        An existing header keeps its canonical name. With first=True the
        header is moved to the front of the iteration order.
        """
        values = normalize_header_value(value)
        validate_header_name(name)

        headers = self._copy()
        canonical = headers._index.setdefault(name.lower(), name)
        headers._store.pop(canonical, None)

        if first:
            headers._store = {canonical: values, **headers._store}
        else:
            headers._store[canonical] = values
        return headers

    def with_added_header(self, name: str, value: HeaderValue) -> "Headers":
        """Create new headers with value appended to the values of name."""
        values = normalize_header_value(value)
        headers = self._copy()
        headers._add(validate_header_name(name), values)
        return headers

    def without_header(self, name: str) -> "Headers":
        """Create new headers without name; unknown names return self."""
        if name not in self:
            return self

        headers = self._copy()
        canonical = headers._index.pop(name.lower())
        del headers._store[canonical]
        return headers

    def raw_items(self) -> List[Tuple[str, str]]:
        """Return one (name, value) pair per value, in order."""
        return [(name, value) for name, values in self._store.items() for value in values]
