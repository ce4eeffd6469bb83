"""In-memory proxy model and the accessor protocol the reconciler writes through."""

from switchyard.model.entities import (
    BALANCE_ALGORITHMS,
    HTTP_CHECK_METHODS,
    Backend,
    Balance,
    CompiledSwitchingRule,
    EntityKind,
    HttpCheck,
    HTTPRequestRule,
    Listener,
    Mode,
    RequestAction,
    Server,
    TimeoutEntry,
)
from switchyard.model.store import ConfigAccessor, ProxyModel

__all__ = [
    "BALANCE_ALGORITHMS",
    "HTTP_CHECK_METHODS",
    "Backend",
    "Balance",
    "CompiledSwitchingRule",
    "EntityKind",
    "HttpCheck",
    "HTTPRequestRule",
    "Listener",
    "Mode",
    "RequestAction",
    "Server",
    "TimeoutEntry",
    "ConfigAccessor",
    "ProxyModel",
]
