"""Directive resolution with change tracking."""

from switchyard.annotations.resolver import Directive, DirectiveStore, Status, entity_id

__all__ = ["Directive", "DirectiveStore", "Status", "entity_id"]
