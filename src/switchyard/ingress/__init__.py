"""Pass input resources and path-level toggles."""

from switchyard.ingress.passthrough import toggle_ssl_passthrough
from switchyard.ingress.resources import (
    GlobalConfig,
    IngressPath,
    PassInput,
    Replica,
    Route,
    Workload,
)

__all__ = [
    "GlobalConfig",
    "IngressPath",
    "PassInput",
    "Replica",
    "Route",
    "Workload",
    "toggle_ssl_passthrough",
]
