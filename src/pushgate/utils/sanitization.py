"""Secret sanitization utilities for logging and error messages.

This module removes sensitive information (PEM certificates and private keys,
passphrases, device tokens) from strings and structured data before they are
logged or shown in error messages.

Examples:
    >>> sanitize_text("token " + "ab" * 32)
    'token ababab<REDACTED>'

    >>> sanitize_value({"passphrase": "hunter2", "port": 2195})
    {'passphrase': '<REDACTED>', 'port': 2195}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Final, TypeIs

REDACTED: Final[str] = "<REDACTED>"

# Number of leading token characters kept so log lines stay correlatable.
TOKEN_PREFIX_LENGTH: Final[int] = 6

_PEM_BLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(-----BEGIN ([A-Z0-9 ]+)-----).*?(-----END \2-----)",
    re.DOTALL,
)

# Device tokens are 32 bytes, written as 64 hex characters
_DEVICE_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"\b([0-9a-fA-F]{{{TOKEN_PREFIX_LENGTH}}})[0-9a-fA-F]{{{64 - TOKEN_PREFIX_LENGTH}}}\b",
)

_SENSITIVE_FIELD_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r".*token.*",
        r".*key.*",
        r".*secret.*",
        r".*pass(word|phrase).*",
        r".*certificate.*",
        r".*credential.*",
    ]
]


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Examples:
        >>> is_sensitive_field("passphrase")
        True
        >>> is_sensitive_field("port")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def mask_token(token: str) -> str:
    """Shorten a device token to its first characters plus the redaction marker."""
    return f"{token[:TOKEN_PREFIX_LENGTH]}{REDACTED}"


def sanitize_text(text: str) -> str:
    """Redact PEM blocks and device tokens inside free text."""
    sanitized = _PEM_BLOCK_PATTERN.sub(rf"\1{REDACTED}\3", text)
    return _DEVICE_TOKEN_PATTERN.sub(rf"\1{REDACTED}", sanitized)


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Values are redacted entirely when their field name looks sensitive;
    strings are scanned for PEM blocks and device tokens; mappings and
    sequences are walked recursively. Anything else is converted to its
    sanitized string form.

    Args:
        value: The value to sanitize
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by the REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_text(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    return sanitize_text(str(value))


def sanitize_exception(exc: BaseException) -> str:
    """Render an exception as ``Type: message`` with secrets removed."""
    return f"{type(exc).__name__}: {sanitize_text(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize a tuple of logging arguments.

    Numbers are kept as-is so %d placeholders still format.
    """
    return tuple(sanitize_value(arg) for arg in args)

