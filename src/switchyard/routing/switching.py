"""Backend switching rules.

Switching rules route a host/path match on a listener to a backend. The
registry keeps one rule map per listener and remembers which listeners
changed; ``compile`` rewrites the compiled rules of those listeners only,
but always reports the full set of backends still referenced so unused ones
can be collected.

Rule order within a listener is the descending lexicographic order of the
rule keys (host + path). It is deterministic and kept as is; it is not a
most-specific-first guarantee.

Example:
    registry = SwitchingRegistry()
    registry.add(SwitchingRule("example.com/api", "example.com", "/api", "default-api-80"), "http", "https")
    result = registry.compile(model, sentinel="RateLimit")
    result.recompiled       # ["http", "https"]
    result.active_backends  # {"RateLimit", "default-api-80", <listener defaults>}
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from switchyard.core.errors import StructuralError, SwitchyardError
from switchyard.model.entities import CompiledSwitchingRule, EntityKind, Listener, Mode
from switchyard.model.store import ConfigAccessor

logger = structlog.get_logger()


@dataclass(frozen=True)
class SwitchingRule:
    """Routes ``host`` + ``path_prefix`` to ``backend``; ``key`` is its identity."""

    key: str
    host: str
    path_prefix: str
    backend: str


@dataclass
class ListenerRuleSet:
    """Switching rules of one listener."""

    rules: dict[str, SwitchingRule] = field(default_factory=dict)
    dirty: bool = False

    def sorted_rules(self) -> list[SwitchingRule]:
        return [self.rules[key] for key in sorted(self.rules, reverse=True)]


@dataclass
class CompileResult:
    """Outcome of a compilation run."""

    recompiled: list[str] = field(default_factory=list)
    active_backends: set[str] = field(default_factory=set)


def build_condition(mode: Mode, rule: SwitchingRule) -> str | None:
    """Build the condition of ``rule`` for a listener in ``mode``.

    Returns None when the rule cannot be expressed in that mode.
    """
    if mode is Mode.TCP:
        if not rule.host:
            return None
        return f"{{ req_ssl_sni -i {rule.host} }}"
    parts = []
    if rule.host:
        parts.append(f"{{ req.hdr(host) -i {rule.host} }}")
    if rule.path_prefix:
        parts.append(f"{{ path_beg {rule.path_prefix} }}")
    return " ".join(parts) or None


class SwitchingRegistry:
    """Switching rules per listener."""

    def __init__(self) -> None:
        self._listeners: dict[str, ListenerRuleSet] = {}

    def add(self, rule: SwitchingRule, *listeners: str) -> None:
        """Set ``rule`` on each listener, replacing any rule with the same key."""
        for name in listeners:
            rule_set = self._listeners.setdefault(name, ListenerRuleSet())
            if rule_set.rules.get(rule.key) != rule:
                rule_set.rules[rule.key] = rule
                rule_set.dirty = True

    def remove(self, key: str, *listeners: str) -> bool:
        """Remove the rule ``key`` from each listener. Returns True if any was removed."""
        removed = False
        for name in listeners:
            rule_set = self._listeners.get(name)
            if rule_set is not None and rule_set.rules.pop(key, None) is not None:
                rule_set.dirty = True
                removed = True
        return removed

    def rules_for(self, listener: str) -> list[SwitchingRule]:
        """Rules of ``listener`` in compilation order."""
        rule_set = self._listeners.get(listener)
        return rule_set.sorted_rules() if rule_set else []

    def is_dirty(self, listener: str) -> bool:
        rule_set = self._listeners.get(listener)
        return rule_set is not None and rule_set.dirty

    def compile(self, store: ConfigAccessor, sentinel: str) -> CompileResult:
        """Recompile dirty listeners and compute the active backend set.

        Args:
            store: Accessor listing the listeners and receiving compiled rules.
            sentinel: Reserved backend that always stays active.

        Raises:
            StructuralError: If listeners cannot be listed.
        """
        try:
            listeners: list[Listener] = store.list_entities(EntityKind.LISTENER)
        except SwitchyardError as e:
            raise StructuralError(f"cannot list listeners: {e}") from e

        result = CompileResult(active_backends={sentinel})
        declared = set()
        for listener in listeners:
            declared.add(listener.name)
            if listener.default_backend:
                result.active_backends.add(listener.default_backend)
            rule_set = self._listeners.get(listener.name)
            if rule_set is None:
                continue
            result.active_backends.update(rule.backend for rule in rule_set.rules.values())
            if not rule_set.dirty:
                continue

            store.delete_all(EntityKind.SWITCHING_RULE, parent=listener.name)
            for rule in rule_set.sorted_rules():
                condition = build_condition(listener.mode, rule)
                if condition is None:
                    logger.info(
                        "Switching rule has no usable match, skipped",
                        listener=listener.name,
                        mode=listener.mode.value,
                        backend=rule.backend,
                    )
                    continue
                store.create_entity(
                    EntityKind.SWITCHING_RULE,
                    CompiledSwitchingRule(backend=rule.backend, cond_test=condition),
                    parent=listener.name,
                )
            rule_set.dirty = False
            result.recompiled.append(listener.name)

        for name, rule_set in self._listeners.items():
            if rule_set.dirty and name not in declared:
                logger.warning("Switching rules target an undeclared listener", listener=name)
                rule_set.dirty = False

        return result
