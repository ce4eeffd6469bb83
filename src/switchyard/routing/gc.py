"""Removal of backends no longer referenced by any listener."""

from __future__ import annotations

from collections.abc import Set

import structlog

from switchyard.core.errors import StructuralError, SwitchyardError
from switchyard.model.entities import EntityKind
from switchyard.model.store import ConfigAccessor

logger = structlog.get_logger()


def collect_backends(store: ConfigAccessor, active: Set[str]) -> list[str]:
    """Delete every backend whose name is not in ``active``.

    Nothing is deleted when the backends cannot be listed.

    Returns:
        Names of the deleted backends.

    Raises:
        StructuralError: If backends cannot be listed or deleted.
    """
    try:
        backends = store.list_entities(EntityKind.BACKEND)
    except SwitchyardError as e:
        raise StructuralError(f"cannot list backends: {e}") from e

    deleted = []
    for backend in backends:
        if backend.name in active:
            continue
        try:
            store.delete_entity(EntityKind.BACKEND, backend.name)
        except SwitchyardError as e:
            raise StructuralError(f"cannot delete backend '{backend.name}': {e}") from e
        logger.info("Unused backend deleted", backend=backend.name)
        deleted.append(backend.name)
    return deleted
