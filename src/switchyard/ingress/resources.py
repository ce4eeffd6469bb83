"""Resources handed to a reconciliation pass.

The watcher that produces them is not part of this package: it builds a
``PassInput`` from the workloads, routes and global config object it
observed and marks each path with its change status.

Example:
    batch = PassInput(
        workloads=[Workload(name="web", port=8080, replicas=[Replica("web-0", "10.0.0.5", 8080)])],
        routes=[Route(name="site", paths=[IngressPath(host="example.com", path_prefix="/", workload="web")])],
        global_config=GlobalConfig(annotations={"timeout-client": "10s"}),
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field

from switchyard.annotations.resolver import Status


@dataclass
class Replica:
    """One running instance of a workload; becomes a backend server."""

    name: str
    address: str
    port: int | None = None


@dataclass
class Workload:
    """A service exposed through routes; becomes a backend."""

    name: str
    namespace: str = "default"
    port: int = 80
    annotations: dict[str, str] = field(default_factory=dict)
    replicas: list[Replica] = field(default_factory=list)

    @property
    def backend_name(self) -> str:
        return f"{self.namespace}-{self.name}-{self.port}"


@dataclass
class IngressPath:
    """A host/path fragment of a route pointing at a workload."""

    host: str = ""
    path_prefix: str = ""
    workload: str = ""
    """Name of the target workload in the route's namespace."""

    status: Status = Status.ADDED
    is_ssl_passthrough: bool = False

    @property
    def key(self) -> str:
        """Identity of the path, shared by its switching and rate-limit rules."""
        return f"{self.host}{self.path_prefix}"


@dataclass
class Route:
    """A routing resource: annotations plus a list of paths."""

    name: str
    namespace: str = "default"
    annotations: dict[str, str] = field(default_factory=dict)
    paths: list[IngressPath] = field(default_factory=list)


@dataclass
class GlobalConfig:
    """The global config object's directives."""

    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class PassInput:
    """Everything one reconciliation pass looks at."""

    workloads: list[Workload] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    global_config: GlobalConfig = field(default_factory=GlobalConfig)
