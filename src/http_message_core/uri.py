"""
URI value object for http_message_core.

This module implements an immutable decomposition of a URI following
the RFC 3986 generic syntax. Components are validated and normalized
on construction, so two URIs that only differ by an explicit default
port or by the case of their scheme and host compare equal.
"""

import ipaddress
import re
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from urllib.parse import quote

from .exceptions import InvalidArgumentError

# Standard ports that are represented as an absent port
DEFAULT_PORTS: Dict[str, int] = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
    "ftp": 21,
    "gopher": 70,
    "nntp": 119,
    "news": 119,
    "telnet": 23,
    "tn3270": 23,
    "imap": 143,
    "pop": 110,
    "ldap": 389,
}

# RFC 3986, Appendix B
_URI_RE = re.compile(
    r"^(?:(?P<scheme>[^:/?#]+):)?"
    r"(?://(?P<authority>[^/?#]*))?"
    r"(?P<path>[^?#]*)"
    r"(?:\?(?P<query>[^#]*))?"
    r"(?:#(?P<fragment>.*))?$",
    re.DOTALL,
)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_IPV_FUTURE_RE = re.compile(r"^v[0-9A-Fa-f]+\.[A-Za-z0-9\-._~!$&'()*+,;=:]+$", re.I)
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_MALFORMED_PCT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_UNRESERVED = r"A-Za-z0-9\-._~"
_SUB_DELIMS = r"!$&'()*+,;="

_REG_NAME_ALLOWED = _UNRESERVED + _SUB_DELIMS
_USER_ALLOWED = _UNRESERVED + _SUB_DELIMS
_USER_INFO_ALLOWED = _USER_ALLOWED + ":"
_PATH_ALLOWED = _UNRESERVED + _SUB_DELIMS + ":@/"
_QUERY_ALLOWED = _PATH_ALLOWED + "?"


def _encoder(allowed: str) -> "re.Pattern[str]":
    return re.compile(f"[^{allowed}%]+")


_USER_RE = _encoder(_USER_ALLOWED)
_USER_INFO_RE = _encoder(_USER_INFO_ALLOWED)
_PATH_RE = _encoder(_PATH_ALLOWED)
_QUERY_RE = _encoder(_QUERY_ALLOWED)
_REG_NAME_ASCII_RE = re.compile(r"[\x20-\x7e]")
_REG_NAME_RE = _encoder(_REG_NAME_ALLOWED)


def _check_text(component: str, value: object) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{component} must be a string")
    if _CONTROL_RE.search(value):
        raise InvalidArgumentError(f"{component} must not contain control characters")
    if _MALFORMED_PCT_RE.search(value):
        raise InvalidArgumentError(f"{component} contains malformed percent-encoding")
    return value


def _encode(pattern: "re.Pattern[str]", value: str) -> str:
    """Percent-encode every run of characters the pattern flags as disallowed."""
    return pattern.sub(lambda match: quote(match.group(0), safe=""), value)


def filter_scheme(scheme: str) -> str:
    """Validate and lower-case a scheme; the empty string means no scheme."""
    _check_text("scheme", scheme)
    if scheme and not _SCHEME_RE.match(scheme):
        raise InvalidArgumentError(f"invalid scheme {scheme!r}")
    return scheme.lower()


def filter_user_info(user_info: str) -> str:
    return _encode(_USER_INFO_RE, _check_text("user info", user_info))


def filter_host(host: str) -> str:
    """Validate a host (reg-name, IPv4, or bracketed IP literal) and lower-case it."""
    _check_text("host", host)

    if host.startswith("["):
        if not host.endswith("]"):
            raise InvalidArgumentError(f"unterminated IP literal in host {host!r}")
        literal = host[1:-1]
        if _IPV_FUTURE_RE.match(literal):
            return host.lower()
        try:
            ipaddress.IPv6Address(literal)
        except ValueError as e:
            raise InvalidArgumentError(f"invalid IPv6 host {host!r}", e) from e
        return host.lower()

    for char in host:
        # Non-ASCII characters are percent-encoded below, other ASCII ones are illegal
        if _REG_NAME_ASCII_RE.match(char) and _REG_NAME_RE.match(char):
            raise InvalidArgumentError(f"invalid character {char!r} in host {host!r}")

    return _encode(_REG_NAME_RE, host).lower()


def filter_port(port: Optional[int], scheme: str = "") -> Optional[int]:
    """Validate a port and drop it when it is the default port of the scheme."""
    if port is None:
        return None
    if isinstance(port, bool) or not isinstance(port, int):
        raise InvalidArgumentError("port must be an integer or None")
    if not 1 <= port <= 65535:
        raise InvalidArgumentError(f"invalid port {port}, must be between 1 and 65535")
    if DEFAULT_PORTS.get(scheme) == port:
        return None
    return port


def filter_path(path: str) -> str:
    return _encode(_PATH_RE, _check_text("path", path))


def filter_query_or_fragment(value: str, component: str = "query") -> str:
    return _encode(_QUERY_RE, _check_text(component, value))


def _split_authority(authority: str) -> Tuple[str, str, Optional[int]]:
    user_info, _, host_port = authority.rpartition("@")

    if host_port.startswith("["):
        end = host_port.find("]")
        if end == -1:
            raise InvalidArgumentError(f"unterminated IP literal in {authority!r}")
        host, rest = host_port[: end + 1], host_port[end + 1 :]
        if rest and not rest.startswith(":"):
            raise InvalidArgumentError(f"unexpected data after IP literal in {authority!r}")
        port_text = rest[1:]
    else:
        host, _, port_text = host_port.partition(":")

    if not port_text:
        return user_info, host, None
    if not port_text.isdigit() or not port_text.isascii():
        raise InvalidArgumentError(f"invalid port {port_text!r}")
    return user_info, host, int(port_text)


@dataclass(frozen=True)
class Uri:
    """
    Immutable URI representation.

    Absent string components are represented by the empty string and an
    absent port by None. Every with_* method returns a new Uri.
    """

    scheme: str = ""
    user_info: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""

    def __post_init__(self) -> None:
        """Validate and normalize components after initialization."""
        scheme = filter_scheme(self.scheme)
        normalized = {
            "scheme": scheme,
            "user_info": filter_user_info(self.user_info),
            "host": filter_host(self.host),
            "port": filter_port(self.port, scheme),
            "path": filter_path(self.path),
            "query": filter_query_or_fragment(self.query, "query"),
            "fragment": filter_query_or_fragment(self.fragment, "fragment"),
        }
        for name, value in normalized.items():
            object.__setattr__(self, name, value)

        self._validate_state()

    def _validate_state(self) -> None:
        if self.authority:
            if self.path and not self.path.startswith("/"):
                object.__setattr__(self, "path", "/" + self.path)
            return

        if self.path.startswith("//") and self.scheme != "file":
            raise InvalidArgumentError(
                "the path of a URI without an authority must not start with two slashes"
            )
        if not self.scheme and ":" in self.path.split("/", 1)[0]:
            raise InvalidArgumentError(
                "a relative URI must not have a path whose first segment contains a colon"
            )

    @classmethod
    def parse(cls, uri: str = "") -> "Uri":
        """
        Create a Uri from its string form.

        Args:
            uri: URI reference such as "https://user@example.com:8443/a?b#c"

        Returns:
            New Uri instance

        Raises:
            InvalidArgumentError: If the string cannot be parsed
        """
        _check_text("uri", uri)

        match = _URI_RE.match(uri)
        if match is None:
            raise InvalidArgumentError(f"unable to parse URI {uri!r}")

        user_info, host, port = "", "", None
        authority = match.group("authority")
        if authority:
            user_info, host, port = _split_authority(authority)

        return cls(
            scheme=match.group("scheme") or "",
            user_info=user_info,
            host=host,
            port=port,
            path=match.group("path") or "",
            query=match.group("query") or "",
            fragment=match.group("fragment") or "",
        )

    @property
    def authority(self) -> str:
        """Get the [user-info@]host[:port] part, or an empty string."""
        authority = self.host
        if self.user_info:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority = f"{authority}:{self.port}"
        return authority

    @property
    def is_absolute(self) -> bool:
        """Check if the URI has a scheme."""
        return bool(self.scheme)

    def with_scheme(self, scheme: str) -> "Uri":
        """Create a new URI with a different scheme."""
        return replace(self, scheme=scheme)

    def with_user_info(self, user: str, password: Optional[str] = None) -> "Uri":
        """Create a new URI with different user information."""
        user_info = _encode(_USER_RE, _check_text("user", user))
        if password:
            user_info += ":" + filter_user_info(password)
        return replace(self, user_info=user_info)

    def with_host(self, host: str) -> "Uri":
        """Create a new URI with a different host."""
        return replace(self, host=host)

    def with_port(self, port: Optional[int]) -> "Uri":
        """Create a new URI with a different port; None removes the port."""
        return replace(self, port=port)

    def with_path(self, path: str) -> "Uri":
        """Create a new URI with a different path."""
        return replace(self, path=path)

    def with_query(self, query: str) -> "Uri":
        """Create a new URI with a different query string (without '?')."""
        return replace(self, query=query)

    def with_fragment(self, fragment: str) -> "Uri":
        """Create a new URI with a different fragment (without '#')."""
        return replace(self, fragment=fragment)

    def __str__(self) -> str:
        uri = ""
        if self.scheme:
            uri += f"{self.scheme}:"

        authority = self.authority
        if authority or self.scheme == "file":
            uri += f"//{authority}"

        uri += self.path

        if self.query:
            uri += f"?{self.query}"
        if self.fragment:
            uri += f"#{self.fragment}"
        return uri
