"""Source whitelist parsing with CIDR validation.

Uses Python's built-in ipaddress module to validate entries. Supports both
IPv4 and IPv6 addresses and CIDR notation. Entries are separated by commas
and/or whitespace.

Example:
    whitelist = SourceWhitelist.parse("10.0.0.0/8, 192.168.1.1")
    whitelist.source_expression  # "10.0.0.0/8 192.168.1.1"
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from ipaddress import ip_network

from switchyard.core.errors import ValidationError

_SEPARATORS = re.compile(r"[\s,]+")


@dataclass
class SourceWhitelist:
    """Validated list of source addresses and networks."""

    entries: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for entry in self.entries:
            try:
                ip_network(entry, strict=False)
            except ValueError as e:
                raise ValidationError(f"invalid whitelist entry '{entry}': {e}") from e

    @classmethod
    def parse(cls, value: str) -> SourceWhitelist:
        """Parse a whitelist directive value.

        Raises:
            ValidationError: If an entry is not an IP address or CIDR.
        """
        return cls(entries=[e for e in _SEPARATORS.split(value.strip()) if e])

    @property
    def source_expression(self) -> str:
        """Entries as expected by a ``src`` match."""
        return " ".join(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
