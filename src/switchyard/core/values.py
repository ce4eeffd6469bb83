"""Parsers for directive values.

Directive values are plain strings. Booleans follow the usual controller
spelling (1/t/true/0/f/false in their common casings) and durations follow
the proxy's time format: an integer with an optional unit suffix, bare
integers being milliseconds.

Example:
    >>> parse_time("10s")
    10000
    >>> parse_bool("True")
    True
"""

from __future__ import annotations

import re

from switchyard.core.errors import ParseError

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_TIME_UNITS = {
    "": 1,
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

_TIME_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)?$")


def parse_bool(value: str) -> bool:
    """Parse a boolean directive value.

    Raises:
        ParseError: If the value is not a recognised boolean spelling.
    """
    value = value.strip()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ParseError(f"invalid boolean: '{value}'")


def parse_time(value: str) -> int:
    """Parse a duration and return it in milliseconds.

    Raises:
        ParseError: If the value is not a duration.
    """
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise ParseError(f"invalid duration: '{value}'")
    amount, unit = match.groups()
    return int(amount) * _TIME_UNITS[unit or ""]


def parse_int(value: str) -> int:
    """Parse a non-negative integer."""
    value = value.strip()
    if not value.isdigit():
        raise ParseError(f"invalid integer: '{value}'")
    return int(value)
