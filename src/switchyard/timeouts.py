"""Default timeouts of the shared defaults section.

Timeouts are set from global-scope directives only (``timeout-<category>``
in the global config object, then the built-in defaults). The health check
timeout is per backend and not handled here.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from switchyard.annotations.resolver import DirectiveStore
from switchyard.core.errors import EntityNotFound, MissingRequiredDirective, ParseError
from switchyard.core.values import parse_time
from switchyard.model.entities import EntityKind, TimeoutEntry
from switchyard.model.store import ConfigAccessor

logger = structlog.get_logger()

TIMEOUT_CATEGORIES = (
    "http-request",
    "connect",
    "client",
    "queue",
    "server",
    "tunnel",
    "http-keep-alive",
)

DEFAULTS_ENTITY = "defaults"


def sync_default_timeouts(
    store: ConfigAccessor,
    directives: DirectiveStore,
    *sources: Mapping[str, str] | None,
    categories: tuple[str, ...] = TIMEOUT_CATEGORIES,
) -> bool:
    """Write changed global timeout directives to the defaults section.

    Args:
        store: Accessor holding the DEFAULT_TIMEOUT entries.
        directives: Directive store of the reconciler.
        *sources: Global-scope directive sources, highest priority first.
        categories: Timeout categories to synchronize, all mandatory.

    Returns:
        True if any category was created or updated.
    """
    changed = False
    for category in categories:
        try:
            directive = directives.resolve(
                DEFAULTS_ENTITY, f"timeout-{category}", *sources, required=True
            )
        except MissingRequiredDirective as e:
            logger.warning("Default timeout not configured", timeout=category, error=str(e))
            continue
        if not directive.status.changed:
            continue

        try:
            parse_time(directive.value)
        except ParseError as e:
            logger.warning(
                "Default timeout rejected",
                timeout=category,
                value=directive.value,
                error=str(e),
            )
            continue

        try:
            store.get_entity(EntityKind.DEFAULT_TIMEOUT, category)
        except EntityNotFound:
            store.create_entity(EntityKind.DEFAULT_TIMEOUT, TimeoutEntry(category, directive.value))
        else:
            store.set_field(EntityKind.DEFAULT_TIMEOUT, category, "value", directive.value)
        logger.debug("Default timeout set", timeout=category, value=directive.value)
        changed = True
    return changed
