"""Backend field updaters."""

from __future__ import annotations

from enum import Enum

import structlog

from switchyard.annotations.resolver import Directive, Status
from switchyard.core.errors import ValidationError
from switchyard.core.values import parse_bool, parse_time
from switchyard.model.entities import Backend, Balance, HttpCheck, Mode
from switchyard.updaters.base import FieldUpdater, check_exhaustive

logger = structlog.get_logger()


class BackendDirective(str, Enum):
    """Directives that govern backend fields."""

    ABORTONCLOSE = "abortonclose"
    CHECK_HTTP = "check-http"
    FORWARDED_FOR = "forwarded-for"
    LOAD_BALANCE = "load-balance"
    TIMEOUT_CHECK = "timeout-check"


def update_balance(backend: Backend, directive: Directive) -> None:
    balance = Balance(algorithm=directive.value.strip())
    balance.validate()
    backend.balance = balance


def update_check_timeout(backend: Backend, directive: Directive) -> None:
    backend.check_timeout = parse_time(directive.value)


def update_forwardfor(backend: Backend, directive: Directive) -> None:
    # X-Forwarded-For needs HTTP mode.
    if backend.mode is Mode.TCP:
        if directive.status is not Status.UNCHANGED:
            logger.info(
                "Option forwardfor ignored, backend is in TCP mode",
                backend=backend.name,
            )
        backend.forwardfor = False
        return
    backend.forwardfor = parse_bool(directive.value)


def update_http_check(backend: Backend, directive: Directive) -> None:
    params = directive.value.split()
    if not params:
        raise ValidationError("httpchk option: incorrect number of params")
    if len(params) == 1:
        check = HttpCheck(uri=params[0])
    elif len(params) == 2:
        check = HttpCheck(method=params[0], uri=params[1])
    else:
        check = HttpCheck(method=params[0], uri=params[1], version=" ".join(params[2:]))
    check.validate()
    backend.http_check = check


def update_abortonclose(backend: Backend, directive: Directive) -> None:
    backend.abortonclose = directive.value == "enabled"


def _clear_http_check(backend: Backend) -> None:
    backend.http_check = None


def _clear_check_timeout(backend: Backend) -> None:
    backend.check_timeout = None


BACKEND_UPDATERS: dict[BackendDirective, FieldUpdater[Backend]] = {
    BackendDirective.ABORTONCLOSE: FieldUpdater(update_abortonclose),
    BackendDirective.CHECK_HTTP: FieldUpdater(update_http_check, clear=_clear_http_check),
    BackendDirective.FORWARDED_FOR: FieldUpdater(update_forwardfor),
    BackendDirective.LOAD_BALANCE: FieldUpdater(update_balance),
    BackendDirective.TIMEOUT_CHECK: FieldUpdater(update_check_timeout, clear=_clear_check_timeout),
}

check_exhaustive(BackendDirective, BACKEND_UPDATERS)
