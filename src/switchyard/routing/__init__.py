"""Switching rules per listener and backend garbage collection."""

from switchyard.routing.gc import collect_backends
from switchyard.routing.switching import (
    CompileResult,
    ListenerRuleSet,
    SwitchingRegistry,
    SwitchingRule,
    build_condition,
)

__all__ = [
    "CompileResult",
    "ListenerRuleSet",
    "SwitchingRegistry",
    "SwitchingRule",
    "build_condition",
    "collect_backends",
]
