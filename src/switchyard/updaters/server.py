"""Server field updaters."""

from __future__ import annotations

from enum import Enum

from switchyard.annotations.resolver import Directive
from switchyard.core.values import parse_bool, parse_int, parse_time
from switchyard.model.entities import Server
from switchyard.updaters.base import FieldUpdater, check_exhaustive


class ServerDirective(str, Enum):
    """Directives that govern server fields."""

    CHECK = "check"
    CHECK_INTERVAL = "check-interval"
    POD_MAXCONN = "pod-maxconn"


def update_check(server: Server, directive: Directive) -> None:
    server.check = parse_bool(directive.value)


def update_inter(server: Server, directive: Directive) -> None:
    server.inter = parse_time(directive.value)


def update_maxconn(server: Server, directive: Directive) -> None:
    server.maxconn = parse_int(directive.value)


def _clear_inter(server: Server) -> None:
    server.inter = None


def _clear_maxconn(server: Server) -> None:
    server.maxconn = None


SERVER_UPDATERS: dict[ServerDirective, FieldUpdater[Server]] = {
    ServerDirective.CHECK: FieldUpdater(update_check),
    ServerDirective.CHECK_INTERVAL: FieldUpdater(update_inter, clear=_clear_inter),
    ServerDirective.POD_MAXCONN: FieldUpdater(
        update_maxconn, clear=_clear_maxconn, workload_only=True
    ),
}

check_exhaustive(ServerDirective, SERVER_UPDATERS)
