"""Switchyard error types.

Per-directive problems (ValidationError, ParseError, MissingRequiredDirective)
are contained by the component that raised them: they are logged and the
pass carries on. StructuralError and PassInProgress reach the caller.
"""

from __future__ import annotations


class SwitchyardError(Exception):
    """Base class for all Switchyard errors."""


class ValidationError(SwitchyardError, ValueError):
    """A directive value violates a field constraint."""


class ParseError(ValidationError):
    """A directive value is not a valid boolean, duration or integer."""


class MissingRequiredDirective(SwitchyardError, LookupError):
    """A mandatory directive is absent from every source."""

    def __init__(self, key: str, entity: str = "") -> None:
        self.key = key
        self.entity = entity
        where = f" for {entity}" if entity else ""
        super().__init__(f"Missing required directive '{key}'{where}")


class EntityNotFound(SwitchyardError, LookupError):
    """The proxy model has no entity with the requested name."""

    def __init__(self, kind: str, name: str, parent: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.parent = parent
        where = f" in {parent}" if parent else ""
        super().__init__(f"{kind} '{name}' not found{where}")


class StructuralError(SwitchyardError):
    """The proxy model cannot be enumerated or fetched."""


class PassInProgress(SwitchyardError):
    """Another reconciliation pass holds the reconciler state."""
