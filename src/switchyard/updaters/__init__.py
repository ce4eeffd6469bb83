"""Field updaters for backends and servers."""

from switchyard.updaters.backend import BACKEND_UPDATERS, BackendDirective
from switchyard.updaters.base import FieldUpdater, apply_directives, check_exhaustive
from switchyard.updaters.server import SERVER_UPDATERS, ServerDirective

__all__ = [
    "BACKEND_UPDATERS",
    "BackendDirective",
    "SERVER_UPDATERS",
    "ServerDirective",
    "FieldUpdater",
    "apply_directives",
    "check_exhaustive",
]
