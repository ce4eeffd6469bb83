"""Whitelist and rate-limit http-request rules.

Every path can carry a source whitelist. Non-whitelisted sources are either
denied outright or, when the rate-limit bypass is enabled, let through to the
rate limiter. The composer keeps one ordered rule list per path and installs
all of them on the HTTP listeners when something changed.

Rule shapes for a path ``/foo`` and whitelist ``10.0.0.0/8``:

    bypass off:  http-request allow if { path_beg /foo } { src 10.0.0.0/8 }
    bypass on:   http-request deny if { path_beg /foo }
                 http-request allow if { path_beg /foo } { src 10.0.0.0/8 }

The deny/allow order of the second form is part of the contract with the
proxy and must not change.
"""

from __future__ import annotations

from typing import assert_never

import structlog

from switchyard.annotations.resolver import Directive, Status
from switchyard.core.errors import StructuralError, SwitchyardError, ValidationError
from switchyard.ingress.resources import IngressPath
from switchyard.model.entities import EntityKind, HTTPRequestRule, Mode, RequestAction
from switchyard.model.store import ConfigAccessor
from switchyard.security.whitelist import SourceWhitelist

logger = structlog.get_logger()


def bypass_enabled(value: str) -> bool:
    """Whether a ``whitelist-with-rate-limit`` value enables the bypass."""
    value = value.strip()
    return value != "" and value.lower() != "off"


def build_rules(path_prefix: str, whitelist: SourceWhitelist, bypass: bool) -> list[HTTPRequestRule]:
    """Build the rule list of one path."""
    if not whitelist:
        return []
    path_match = f"{{ path_beg {path_prefix or '/'} }}"
    allow = HTTPRequestRule(
        action=RequestAction.ALLOW,
        cond_test=f"{path_match} {{ src {whitelist.source_expression} }}",
    )
    if not bypass:
        return [allow]
    deny = HTTPRequestRule(action=RequestAction.DENY, cond_test=path_match)
    return [deny, allow]


class RateLimitComposer:
    """Per-path whitelist rule sets with a global dirty marker."""

    def __init__(self, prefix: str = "WHT-") -> None:
        self._prefix = prefix
        self._rules: dict[str, list[HTTPRequestRule]] = {}
        self.dirty = False

    def _key(self, path: IngressPath) -> str:
        return f"{self._prefix}{path.key}"

    def rules_for(self, path: IngressPath) -> list[HTTPRequestRule] | None:
        """Current rule list of a path, or None if it never had one."""
        rules = self._rules.get(self._key(path))
        return list(rules) if rules is not None else None

    def compose(
        self,
        path: IngressPath,
        path_status: Status,
        whitelist: Directive,
        bypass: Directive,
    ) -> bool:
        """Recompute the rule list of ``path`` when its inputs changed.

        Args:
            path: Path being reconciled.
            path_status: Status of the path at the start of the pass.
            whitelist: Resolved ``whitelist`` directive.
            bypass: Resolved ``whitelist-with-rate-limit`` directive.

        Returns:
            True if the rule list was recomputed.
        """
        key = self._key(path)
        status = whitelist.status
        if status is Status.UNCHANGED:
            if bypass.status.changed and self._rules.get(key):
                status = Status.MODIFIED
            if bypass.value and path_status is Status.ADDED:
                status = Status.MODIFIED

        if status is Status.ADDED or status is Status.MODIFIED:
            try:
                sources = SourceWhitelist.parse(whitelist.value)
            except ValidationError as e:
                logger.warning("Whitelist rejected", path=path.key, error=str(e))
                return False
            self._rules[key] = build_rules(path.path_prefix, sources, bypass_enabled(bypass.value))
        elif status is Status.DELETED:
            self._rules[key] = []
        elif status is Status.UNCHANGED:
            return False
        else:
            assert_never(status)

        self.dirty = True
        return True

    def discard(self, path: IngressPath) -> bool:
        """Forget a deleted path's rules. Returns True if it had any."""
        rules = self._rules.pop(self._key(path), None)
        if rules:
            self.dirty = True
            return True
        return False

    def commit(self, store: ConfigAccessor) -> bool:
        """Install every rule set on the HTTP listeners if anything changed.

        Rule sets are written in ascending key order.

        Raises:
            StructuralError: If listeners cannot be listed.
        """
        if not self.dirty:
            return False
        try:
            listeners = store.list_entities(EntityKind.LISTENER)
        except SwitchyardError as e:
            raise StructuralError(f"cannot list listeners: {e}") from e

        rules = [rule for key in sorted(self._rules) for rule in self._rules[key]]
        for listener in listeners:
            if listener.mode is not Mode.HTTP:
                continue
            store.delete_all(EntityKind.HTTP_REQUEST_RULE, parent=listener.name)
            for rule in rules:
                store.create_entity(EntityKind.HTTP_REQUEST_RULE, rule, parent=listener.name)
        self.dirty = False
        logger.debug("Whitelist rules installed", rules=len(rules))
        return True

    def __len__(self) -> int:
        return len(self._rules)
