"""Directive resolution and change tracking.

A directive is a configuration value looked up by key in a list of source
mappings (workload annotations, route annotations, global annotations and the
built-in defaults, highest priority first). The store remembers what each
``(entity, key)`` pair resolved to on the previous pass, so every resolution
also says whether the value was added, modified, deleted or left unchanged.

Example:
    store = DirectiveStore()
    directive = store.resolve("default-web-80", "load-balance", workload, route, global_)
    if directive.status.changed:
        apply(directive.value)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from switchyard.core.errors import MissingRequiredDirective


class Status(Enum):
    """Change status of a value relative to the previous pass."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"

    @property
    def changed(self) -> bool:
        return self is not Status.UNCHANGED


@dataclass(frozen=True)
class Directive:
    """A resolved directive value with its change status."""

    key: str
    value: str = ""
    previous: str = ""
    status: Status = Status.UNCHANGED


def entity_id(*parts: str) -> str:
    """Build a directive entity identifier from its parts."""
    return "/".join(parts)


class DirectiveStore:
    """Remembers resolved directive values between passes."""

    def __init__(self) -> None:
        self._values: dict[tuple[str, str], str] = {}

    def resolve(
        self,
        entity: str,
        key: str,
        *sources: Mapping[str, str] | None,
        required: bool = False,
    ) -> Directive:
        """Resolve ``key`` for ``entity`` against the sources in priority order.

        Args:
            entity: Identity of the object the directive applies to.
            key: Directive name, e.g. ``"load-balance"``.
            *sources: Mappings scanned in order; the first one holding the key wins.
            required: Raise instead of reporting an empty value when no source has the key.

        Returns:
            The resolved Directive. The store is updated for the next pass.

        Raises:
            MissingRequiredDirective: If ``required`` and no source has the key.
        """
        value: str | None = None
        for source in sources:
            if source is not None and key in source:
                value = str(source[key])
                break

        previous = self._values.get((entity, key))

        if value is None:
            if required:
                raise MissingRequiredDirective(key, entity)
            if previous is None:
                return Directive(key)
            del self._values[(entity, key)]
            return Directive(key, "", previous, Status.DELETED)

        self._values[(entity, key)] = value
        if previous is None:
            status = Status.ADDED
        elif previous == value:
            status = Status.UNCHANGED
        else:
            status = Status.MODIFIED
        return Directive(key, value, previous or "", status)

    def previous(self, entity: str, key: str) -> str | None:
        """Return the value recorded for ``(entity, key)``, if any."""
        return self._values.get((entity, key))

    def forget_entity(self, entity: str) -> int:
        """Drop every record of ``entity``. Returns the number dropped."""
        keys = [k for k in self._values if k[0] == entity]
        for k in keys:
            del self._values[k]
        return len(keys)

    def forget_children(self, parent: str) -> int:
        """Drop records of every entity nested under ``parent``."""
        prefix = parent + "/"
        keys = [k for k in self._values if k[0].startswith(prefix)]
        for k in keys:
            del self._values[k]
        return len(keys)

    def __len__(self) -> int:
        return len(self._values)
