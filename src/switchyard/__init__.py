"""Switchyard: reconciliation core of a proxy ingress controller.

Turns observed workloads, routes and a global config object into proxy
model changes: backends and servers, switching rules, whitelist rules and
default timeouts.

Usage:
    from switchyard import PassInput, ProxyModel, Reconciler

    reconciler = Reconciler(ProxyModel.from_file("snapshot.yaml"))
    needs_reload = reconciler.reconcile(PassInput(...))
"""

from switchyard.annotations import Directive, DirectiveStore, Status
from switchyard.core import (
    SwitchyardConfig,
    SwitchyardError,
    configure_logging,
    get_config,
)
from switchyard.ingress import GlobalConfig, IngressPath, PassInput, Replica, Route, Workload
from switchyard.model import ConfigAccessor, ProxyModel
from switchyard.reconciler import Reconciler, ReconcilerState

__version__ = "0.1.0"

__all__ = [
    "ConfigAccessor",
    "Directive",
    "DirectiveStore",
    "GlobalConfig",
    "IngressPath",
    "PassInput",
    "ProxyModel",
    "Reconciler",
    "ReconcilerState",
    "Replica",
    "Route",
    "Status",
    "SwitchyardConfig",
    "SwitchyardError",
    "Workload",
    "configure_logging",
    "get_config",
]
