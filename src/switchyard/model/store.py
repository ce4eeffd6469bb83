"""Config accessor protocol and the in-memory proxy model.

The reconciler never touches a persisted proxy configuration directly. It
reads and writes entities through a ``ConfigAccessor``; ``ProxyModel`` is
the in-memory implementation. Entities are handed out as deep copies, so a
change becomes part of the model only when it is written back.

Example:
    model = ProxyModel.from_file("snapshot.yaml")
    backend = model.get_entity(EntityKind.BACKEND, "default-web-80")
    backend.abortonclose = True
    model.update_entity(EntityKind.BACKEND, backend)
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Protocol

from switchyard.core.config import load_config_from_file
from switchyard.core.errors import EntityNotFound, ValidationError
from switchyard.model.entities import (
    Backend,
    CompiledSwitchingRule,
    EntityKind,
    HTTPRequestRule,
    Listener,
    RequestAction,
    Server,
    TimeoutEntry,
)

# Kinds stored as ordered lists and addressed by position.
ORDERED_KINDS = frozenset({EntityKind.SWITCHING_RULE, EntityKind.HTTP_REQUEST_RULE})

# Kinds that must be created under an existing parent of the given kind.
PARENT_KINDS = {
    EntityKind.SERVER: EntityKind.BACKEND,
    EntityKind.SWITCHING_RULE: EntityKind.LISTENER,
    EntityKind.HTTP_REQUEST_RULE: EntityKind.LISTENER,
}


class ConfigAccessor(Protocol):
    """Access to the proxy model that a reconciliation pass mutates."""

    def get_entity(self, kind: EntityKind, name: str, parent: str | None = None) -> Any: ...

    def list_entities(self, kind: EntityKind, parent: str | None = None) -> list[Any]: ...

    def create_entity(self, kind: EntityKind, entity: Any, parent: str | None = None) -> None: ...

    def update_entity(self, kind: EntityKind, entity: Any, parent: str | None = None) -> None: ...

    def set_field(
        self,
        kind: EntityKind,
        name: str,
        field: str,
        value: Any,
        parent: str | None = None,
    ) -> None: ...

    def delete_entity(self, kind: EntityKind, name: str, parent: str | None = None) -> None: ...

    def delete_all(self, kind: EntityKind, parent: str | None = None) -> None: ...


class ProxyModel:
    """In-memory proxy model implementing ``ConfigAccessor``."""

    def __init__(self) -> None:
        self._named: dict[tuple[EntityKind, str | None], dict[str, Any]] = {}
        self._ordered: dict[tuple[EntityKind, str | None], list[Any]] = {}

    def _check_parent(self, kind: EntityKind, parent: str | None) -> None:
        parent_kind = PARENT_KINDS.get(kind)
        if parent_kind is None:
            return
        if parent is None or parent not in self._named.get((parent_kind, None), {}):
            raise EntityNotFound(parent_kind.value, parent or "")

    def _bucket(self, kind: EntityKind, parent: str | None) -> dict[str, Any]:
        return self._named.setdefault((kind, parent), {})

    def _position(self, kind: EntityKind, name: str, parent: str | None) -> int:
        items = self._ordered.get((kind, parent), [])
        try:
            index = int(name)
        except ValueError:
            raise EntityNotFound(kind.value, name, parent) from None
        if not 0 <= index < len(items):
            raise EntityNotFound(kind.value, name, parent)
        return index

    def get_entity(self, kind: EntityKind, name: str, parent: str | None = None) -> Any:
        if kind in ORDERED_KINDS:
            index = self._position(kind, name, parent)
            return copy.deepcopy(self._ordered[(kind, parent)][index])
        entity = self._named.get((kind, parent), {}).get(name)
        if entity is None:
            raise EntityNotFound(kind.value, name, parent)
        return copy.deepcopy(entity)

    def list_entities(self, kind: EntityKind, parent: str | None = None) -> list[Any]:
        if kind in ORDERED_KINDS:
            return copy.deepcopy(self._ordered.get((kind, parent), []))
        return copy.deepcopy(list(self._named.get((kind, parent), {}).values()))

    def create_entity(self, kind: EntityKind, entity: Any, parent: str | None = None) -> None:
        self._check_parent(kind, parent)
        if kind in ORDERED_KINDS:
            self._ordered.setdefault((kind, parent), []).append(copy.deepcopy(entity))
            return
        bucket = self._bucket(kind, parent)
        if entity.name in bucket:
            raise ValidationError(f"{kind.value} '{entity.name}' already exists")
        bucket[entity.name] = copy.deepcopy(entity)

    def update_entity(self, kind: EntityKind, entity: Any, parent: str | None = None) -> None:
        if kind in ORDERED_KINDS:
            raise ValidationError(f"{kind.value} entries cannot be updated in place")
        bucket = self._named.get((kind, parent), {})
        if entity.name not in bucket:
            raise EntityNotFound(kind.value, entity.name, parent)
        bucket[entity.name] = copy.deepcopy(entity)

    def set_field(
        self,
        kind: EntityKind,
        name: str,
        field: str,
        value: Any,
        parent: str | None = None,
    ) -> None:
        if kind in ORDERED_KINDS:
            entity = self._ordered[(kind, parent)][self._position(kind, name, parent)]
        else:
            entity = self._named.get((kind, parent), {}).get(name)
            if entity is None:
                raise EntityNotFound(kind.value, name, parent)
        if not hasattr(entity, field):
            raise ValidationError(f"{kind.value} has no field '{field}'")
        setattr(entity, field, copy.deepcopy(value))

    def delete_entity(self, kind: EntityKind, name: str, parent: str | None = None) -> None:
        if kind in ORDERED_KINDS:
            del self._ordered[(kind, parent)][self._position(kind, name, parent)]
            return
        bucket = self._named.get((kind, parent), {})
        if name not in bucket:
            raise EntityNotFound(kind.value, name, parent)
        del bucket[name]
        # Children go with their parent.
        for child_kind, parent_kind in PARENT_KINDS.items():
            if parent_kind is kind:
                self._named.pop((child_kind, name), None)
                self._ordered.pop((child_kind, name), None)

    def delete_all(self, kind: EntityKind, parent: str | None = None) -> None:
        self._named.pop((kind, parent), None)
        self._ordered.pop((kind, parent), None)

    def to_dict(self) -> dict[str, Any]:
        """Export the model as a dictionary."""
        listeners = []
        for listener in self.list_entities(EntityKind.LISTENER):
            data = listener.to_dict()
            data["switching_rules"] = [
                r.to_dict() for r in self.list_entities(EntityKind.SWITCHING_RULE, listener.name)
            ]
            data["http_request_rules"] = [
                r.to_dict()
                for r in self.list_entities(EntityKind.HTTP_REQUEST_RULE, listener.name)
            ]
            listeners.append(data)

        backends = []
        for backend in self.list_entities(EntityKind.BACKEND):
            data = backend.to_dict()
            data["servers"] = [
                s.to_dict() for s in self.list_entities(EntityKind.SERVER, backend.name)
            ]
            backends.append(data)

        return {
            "listeners": listeners,
            "backends": backends,
            "defaults": {
                "timeouts": {
                    t.name: t.value for t in self.list_entities(EntityKind.DEFAULT_TIMEOUT)
                }
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProxyModel:
        """Create a model from a dictionary (e.g. a YAML snapshot).

        Expected layout::

            listeners:
              - name: http
                mode: http
                default_backend: default-backend
            backends:
              - name: default-backend
                servers:
                  - {name: s1, address: 10.0.0.1, port: 8080}
            defaults:
              timeouts:
                client: 50s
        """
        model = cls()
        for backend_data in data.get("backends", []):
            backend = Backend.from_dict(backend_data)
            model.create_entity(EntityKind.BACKEND, backend)
            for server_data in backend_data.get("servers", []):
                model.create_entity(
                    EntityKind.SERVER, Server.from_dict(server_data), parent=backend.name
                )
        for listener_data in data.get("listeners", []):
            listener = Listener.from_dict(listener_data)
            model.create_entity(EntityKind.LISTENER, listener)
            for rule in listener_data.get("switching_rules", []):
                model.create_entity(
                    EntityKind.SWITCHING_RULE,
                    CompiledSwitchingRule(backend=rule["backend"], cond_test=rule["cond_test"]),
                    parent=listener.name,
                )
            for rule in listener_data.get("http_request_rules", []):
                model.create_entity(
                    EntityKind.HTTP_REQUEST_RULE,
                    HTTPRequestRule(
                        action=RequestAction(rule["action"]), cond_test=rule["cond_test"]
                    ),
                    parent=listener.name,
                )
        timeouts = data.get("defaults", {}).get("timeouts", {})
        for name, value in timeouts.items():
            model.create_entity(EntityKind.DEFAULT_TIMEOUT, TimeoutEntry(name, str(value)))
        return model

    @classmethod
    def from_file(cls, path: str | Path) -> ProxyModel:
        """Create a model from a YAML or TOML snapshot file."""
        return cls.from_dict(load_config_from_file(path))
