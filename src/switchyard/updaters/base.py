"""Table-driven directive application.

Each entity kind has an enum of the directives that govern it and a registry
mapping every enum member to a ``FieldUpdater``. Adding a directive means
adding an enum member and a registry entry; ``check_exhaustive`` refuses a
registry that misses a member.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import structlog

from switchyard.annotations.resolver import Directive, Status
from switchyard.core.errors import ValidationError

logger = structlog.get_logger()

E = TypeVar("E")
K = TypeVar("K", bound=Enum)


@dataclass(frozen=True)
class FieldUpdater(Generic[E]):
    """Applies one directive to one field of an entity."""

    apply: Callable[[E, Directive], None]
    """Validate the directive and set the field. Raises ValidationError."""

    clear: Callable[[E], None] | None = None
    """Unset the field when its directive is deleted. Only for fields without an implicit default."""

    workload_only: bool = False
    """Resolve the directive from the workload scope alone."""


def check_exhaustive(keys: type[K], registry: Mapping[K, FieldUpdater]) -> None:
    """Raise TypeError unless ``registry`` has an updater for every member of ``keys``."""
    missing = [k.value for k in keys if k not in registry]
    if missing:
        raise TypeError(f"No updater registered for {keys.__name__}: {', '.join(missing)}")


def apply_directives(
    entity: E,
    directives: Mapping[K, Directive],
    registry: Mapping[K, FieldUpdater[E]],
    *,
    name: str,
    force: Collection[K] = (),
) -> bool:
    """Apply resolved directives to ``entity`` through ``registry``.

    A directive is applied when its status is not UNCHANGED or its key is
    in ``force``. A directive that fails validation is logged and skipped;
    the remaining directives still apply.

    Args:
        entity: Working copy of the backend or server.
        directives: Resolved directive per key.
        registry: Updater per key.
        name: Entity name, for logging.
        force: Keys applied even when unchanged.

    Returns:
        True if any field was set or cleared.
    """
    changed = False
    for key, updater in registry.items():
        directive = directives.get(key)
        if directive is None:
            continue
        if not directive.status.changed and key not in force:
            continue
        try:
            if directive.status is Status.DELETED and updater.clear is not None:
                updater.clear(entity)
            else:
                updater.apply(entity, directive)
        except ValidationError as e:
            logger.warning(
                "Directive rejected",
                entity=name,
                key=directive.key,
                value=directive.value,
                error=str(e),
            )
            continue
        changed = True
    return changed
