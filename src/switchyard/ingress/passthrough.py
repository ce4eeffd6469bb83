"""SSL passthrough toggle.

A path with SSL passthrough enabled is switched by SNI on the TCP listener,
so its backend has to run in TCP mode; otherwise the backend runs in HTTP
mode.
"""

from __future__ import annotations

import structlog

from switchyard.annotations.resolver import Directive, Status
from switchyard.core.errors import ParseError
from switchyard.core.values import parse_bool
from switchyard.ingress.resources import IngressPath
from switchyard.model.entities import Backend, EntityKind, Mode
from switchyard.model.store import ConfigAccessor

logger = structlog.get_logger()


def toggle_ssl_passthrough(
    store: ConfigAccessor,
    directive: Directive,
    path: IngressPath,
    backend: Backend,
    force: bool = False,
) -> bool:
    """Couple the path's passthrough flag to the backend mode.

    Runs when the directive or the path changed, or when ``force`` is set
    (e.g. the backend was just recreated in its default mode). On success
    the path is marked MODIFIED so its switching rule is re-registered.

    Args:
        store: Accessor the backend mode is written through.
        directive: Resolved ``ssl-passthrough`` directive.
        path: Path being reconciled.
        backend: Current state of the path's backend.
        force: Apply even when nothing changed.

    Returns:
        True if the backend mode or the path flag changed.
    """
    if not force and directive.status is Status.UNCHANGED and path.status is Status.UNCHANGED:
        return False

    try:
        enabled = parse_bool(directive.value)
    except ParseError as e:
        logger.warning(
            "Invalid ssl-passthrough value",
            path=path.key,
            value=directive.value,
            error=str(e),
        )
        return False

    changed = path.is_ssl_passthrough != enabled
    path.is_ssl_passthrough = enabled

    mode = Mode.TCP if enabled else Mode.HTTP
    if backend.mode is not mode:
        store.set_field(EntityKind.BACKEND, backend.name, "mode", mode)
        if mode is Mode.TCP and backend.forwardfor:
            store.set_field(EntityKind.BACKEND, backend.name, "forwardfor", False)
            backend.forwardfor = False
        backend.mode = mode
        changed = True
        logger.info("Backend mode switched", backend=backend.name, mode=mode.value)

    path.status = Status.MODIFIED
    return changed
