"""HTTP header name/value validation (RFC 7230 token and field-value rules)."""

from __future__ import annotations

import string

MAX_HEADER_VALUE_LENGTH = 8192
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_FORBIDDEN_VALUE_CHARS = frozenset("\r\n\0")


def is_valid_header_name(name: str) -> bool:
    """Return True when ``name`` is a non-empty RFC 7230 token."""

    if not name:
        return False
    return all(char in _TOKEN_CHARS for char in name)


def is_valid_header_value(value: str) -> bool:
    """Return True for bounded ASCII values without CR, LF or NUL.

    Horizontal tab is permitted.
    """

    if len(value) > MAX_HEADER_VALUE_LENGTH:
        return False
    for char in value:
        if char in _FORBIDDEN_VALUE_CHARS:
            return False
        if ord(char) > 127:  # noqa: PLR2004
            return False
    return True
