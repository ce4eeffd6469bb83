"""Source whitelists and rate-limit bypass rules.

This module provides:
- CIDR whitelist parsing (IPv4 and IPv6)
- Per-path allow/deny http-request rule composition
"""

from switchyard.security.ratelimit import RateLimitComposer, build_rules, bypass_enabled
from switchyard.security.whitelist import SourceWhitelist

__all__ = [
    "RateLimitComposer",
    "SourceWhitelist",
    "build_rules",
    "bypass_enabled",
]
