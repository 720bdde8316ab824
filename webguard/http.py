"""Small HTTP request, response and header types used by the middleware."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Union

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~"
    "0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

HeaderItems = Union[Mapping[str, str], Iterable[tuple[str, str]], None]


def _is_token(value: str) -> bool:
    return bool(value) and all(char in _TOKEN_CHARS for char in value)


def _is_valid_header_value(value: str) -> bool:
    return all(char == "\t" or (ord(char) >= 0x20 and ord(char) != 0x7F) for char in value)


def parse_method(value: str) -> str:
    """Validate an HTTP method token; the method is case-sensitive and returned as given."""
    if not isinstance(value, str) or not _is_token(value):
        raise ValueError(f"invalid HTTP method: {value!r}")
    return value


def parse_header_name(value: str) -> str:
    """Validate a header field name and return it in lower case."""
    if not isinstance(value, str) or not _is_token(value):
        raise ValueError(f"invalid header name: {value!r}")
    return value.lower()


class Headers(MutableMapping[str, str]):
    """Case-insensitive header map; iteration yields lower-case names in insertion order."""

    def __init__(self, items: HeaderItems = None) -> None:
        self._values: dict[str, str] = {}
        if items is not None:
            pairs = items.items() if isinstance(items, Mapping) else items
            for name, value in pairs:
                self[name] = value

    @staticmethod
    def _key(name: object) -> str:
        if not isinstance(name, str):
            raise KeyError(name)
        return name.lower()

    def __getitem__(self, name: str) -> str:
        return self._values[self._key(name)]

    def __setitem__(self, name: str, value: str) -> None:
        key = parse_header_name(name)
        if not isinstance(value, str) or not _is_valid_header_value(value):
            raise ValueError(f"invalid value for header {name!r}: {value!r}")
        self._values[key] = value

    def __delitem__(self, name: str) -> None:
        key = self._key(name)
        if key not in self._values:
            raise KeyError(name)
        self._values.pop(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"


@dataclass
class Request:
    """An incoming HTTP request head."""

    method: str = "GET"
    path: str = "/"
    headers: Headers = field(default_factory=Headers)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    def cookie(self, name: str) -> str | None:
        """Return the value of the named cookie, or None if it is absent."""
        raw = self.headers.get("cookie")
        if raw is None:
            return None
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            return None
        morsel = jar.get(name)
        return None if morsel is None else morsel.value


@dataclass
class Response:
    """An outgoing HTTP response."""

    status: int = 200
    headers: Headers = field(default_factory=Headers)
    body: Union[str, bytes] = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)