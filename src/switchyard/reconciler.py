"""Reconciliation pass driver.

One pass takes the workloads, routes and global config object observed by
the watcher and brings the proxy model in line with them:

1. Every path is resolved once to its workload and backend (``PassIndex``).
2. Per path: the backend is created if missing, whitelist rules are
   composed, SSL passthrough is applied and the switching rule is
   registered.
3. Per backend, once all its paths are done: backend and server directives
   are applied.
4. Whitelist rules are installed, switching rules are compiled, unused
   backends are deleted and default timeouts are synchronized.

The pass returns whether the proxy has to be reloaded. Making the staged
model live is the caller's job.

Example:
    reconciler = Reconciler(ProxyModel.from_file("snapshot.yaml"))
    if reconciler.reconcile(batch):
        reload_proxy()
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, assert_never

import structlog

from switchyard.annotations.resolver import Directive, DirectiveStore, Status, entity_id
from switchyard.core.config import SwitchyardConfig, get_config
from switchyard.core.errors import EntityNotFound, PassInProgress, StructuralError, SwitchyardError
from switchyard.ingress.passthrough import toggle_ssl_passthrough
from switchyard.ingress.resources import IngressPath, PassInput, Route, Workload
from switchyard.model.entities import Backend, EntityKind, Mode, Server
from switchyard.model.store import ConfigAccessor
from switchyard.routing.gc import collect_backends
from switchyard.routing.switching import SwitchingRegistry, SwitchingRule
from switchyard.security.ratelimit import RateLimitComposer
from switchyard.timeouts import sync_default_timeouts
from switchyard.updaters.backend import BACKEND_UPDATERS, BackendDirective
from switchyard.updaters.base import FieldUpdater, apply_directives
from switchyard.updaters.server import SERVER_UPDATERS

logger = structlog.get_logger()

Sources = tuple[Mapping[str, str] | None, ...]


@dataclass
class ReconcilerState:
    """Everything a reconciler carries from one pass to the next."""

    directives: DirectiveStore = field(default_factory=DirectiveStore)
    switching: SwitchingRegistry = field(default_factory=SwitchingRegistry)
    rate_limits: RateLimitComposer = field(default_factory=RateLimitComposer)


@dataclass
class PathRef:
    """A path together with the route it belongs to."""

    route: Route
    path: IngressPath

    @property
    def entity(self) -> str:
        return entity_id("path", self.route.namespace, self.route.name, self.path.key)


@dataclass
class LivePath(PathRef):
    """A path whose target workload is part of the batch."""

    workload: Workload

    @property
    def backend(self) -> str:
        return self.workload.backend_name


@dataclass
class PassIndex:
    """Lookup tables built once at the start of a pass.

    Live paths whose workload is not part of the batch are skipped. Deleted
    paths are kept even without a workload so their rules can be removed.
    """

    workloads: dict[tuple[str, str], Workload] = field(default_factory=dict)
    live: list[LivePath] = field(default_factory=list)
    deleted: list[PathRef] = field(default_factory=list)
    skipped: list[PathRef] = field(default_factory=list)

    @classmethod
    def build(cls, batch: PassInput) -> PassIndex:
        index = cls(workloads={(w.namespace, w.name): w for w in batch.workloads})
        for route in batch.routes:
            for path in route.paths:
                status = path.status
                if status is Status.DELETED:
                    index.deleted.append(PathRef(route, path))
                elif status is Status.ADDED or status is Status.MODIFIED or status is Status.UNCHANGED:
                    workload = index.workloads.get((route.namespace, path.workload))
                    if workload is None:
                        logger.warning(
                            "Path targets an unknown workload, skipped",
                            route=f"{route.namespace}/{route.name}",
                            path=path.key,
                            workload=path.workload,
                        )
                        index.skipped.append(PathRef(route, path))
                    else:
                        index.live.append(LivePath(route, path, workload))
                else:
                    assert_never(status)
        return index


class Reconciler:
    """Runs reconciliation passes against one proxy model.

    The reconciler owns its ``ReconcilerState``; only one pass may use it
    at a time.
    """

    def __init__(self, store: ConfigAccessor, config: SwitchyardConfig | None = None) -> None:
        self.store = store
        self.config = config or get_config()
        self._state = ReconcilerState(
            rate_limits=RateLimitComposer(prefix=self.config.rate_limit_rule_prefix)
        )
        self._lock = threading.Lock()

    @property
    def state(self) -> ReconcilerState:
        return self._state

    def reconcile(self, batch: PassInput) -> bool:
        """Run one pass over ``batch``.

        Returns:
            True if the proxy must be reloaded.

        Raises:
            PassInProgress: If another pass is running.
            StructuralError: If the proxy model cannot be enumerated.
        """
        if not self._lock.acquire(blocking=False):
            raise PassInProgress("a reconciliation pass is already running")
        try:
            return self._run(self._state, batch)
        finally:
            self._lock.release()

    def _run(self, state: ReconcilerState, batch: PassInput) -> bool:
        index = PassIndex.build(batch)
        global_sources: Sources = (
            batch.global_config.annotations,
            self.config.default_directives,
        )

        for ref in index.deleted:
            self._remove_path(state, ref)

        needs_reload = False
        # Backend modes before any path of this pass touched them.
        start_modes: dict[str, Mode] = {}
        for live in index.live:
            needs_reload |= self._reconcile_path(
                state, live, self._sources(live, global_sources), start_modes
            )

        handled: set[str] = set()
        for live in index.live:
            if live.backend in handled:
                continue
            handled.add(live.backend)
            sources = self._sources(live, global_sources)
            needs_reload |= self._update_backend(state, live.backend, sources, start_modes)
            needs_reload |= self._sync_servers(state, live.backend, live.workload, sources)

        needs_reload |= state.rate_limits.commit(self.store)

        compiled = state.switching.compile(self.store, sentinel=self.config.rate_limit_backend)
        needs_reload |= bool(compiled.recompiled)

        deleted = collect_backends(self.store, compiled.active_backends)
        for name in deleted:
            state.directives.forget_entity(name)
            state.directives.forget_children(name)
        needs_reload |= bool(deleted)

        needs_reload |= sync_default_timeouts(self.store, state.directives, *global_sources)

        self._settle(batch)
        logger.info(
            "Reconciliation pass finished",
            paths=len(index.live),
            removed_paths=len(index.deleted),
            recompiled=compiled.recompiled,
            deleted_backends=deleted,
            needs_reload=needs_reload,
        )
        return needs_reload

    @staticmethod
    def _sources(live: LivePath, global_sources: Sources) -> Sources:
        return (live.workload.annotations, live.route.annotations, *global_sources)

    def _reconcile_path(
        self,
        state: ReconcilerState,
        live: LivePath,
        sources: Sources,
        start_modes: dict[str, Mode],
    ) -> bool:
        path, entity = live.path, live.entity
        path_status = path.status

        backend, created = self._ensure_backend(state, live.backend)
        changed = created
        start_modes.setdefault(backend.name, backend.mode)

        state.rate_limits.compose(
            path,
            path_status,
            state.directives.resolve(entity, "whitelist", *sources),
            state.directives.resolve(entity, "whitelist-with-rate-limit", *sources),
        )

        # A recreated backend starts in HTTP mode whatever its paths ask for.
        changed |= toggle_ssl_passthrough(
            self.store,
            state.directives.resolve(entity, "ssl-passthrough", *sources),
            path,
            backend,
            force=created,
        )

        if path.status is not Status.UNCHANGED:
            self._register_path(state, live)
        return changed

    def _ensure_backend(self, state: ReconcilerState, name: str) -> tuple[Backend, bool]:
        try:
            return self.store.get_entity(EntityKind.BACKEND, name), False
        except EntityNotFound:
            pass
        except SwitchyardError as e:
            raise StructuralError(f"cannot fetch backend '{name}': {e}") from e

        backend = Backend(name=name)
        self.store.create_entity(EntityKind.BACKEND, backend)
        # A recreated backend starts without directive history.
        state.directives.forget_entity(name)
        state.directives.forget_children(name)
        logger.info("Backend created", backend=name)
        return backend, True

    def _resolve(
        self,
        state: ReconcilerState,
        entity: str,
        registry: Mapping[Any, FieldUpdater[Any]],
        sources: Sources,
    ) -> dict[Any, Directive]:
        return {
            key: state.directives.resolve(
                entity, key.value, *(sources[:1] if updater.workload_only else sources)
            )
            for key, updater in registry.items()
        }

    def _update_backend(
        self,
        state: ReconcilerState,
        name: str,
        sources: Sources,
        start_modes: Mapping[str, Mode],
    ) -> bool:
        backend = self.store.get_entity(EntityKind.BACKEND, name)
        directives = self._resolve(state, name, BACKEND_UPDATERS, sources)
        force: tuple[Enum, ...] = ()
        if start_modes.get(name, backend.mode) is not backend.mode:
            force = (BackendDirective.FORWARDED_FOR,)
        if not apply_directives(backend, directives, BACKEND_UPDATERS, name=name, force=force):
            return False
        self.store.update_entity(EntityKind.BACKEND, backend)
        logger.debug("Backend updated", backend=name)
        return True

    def _sync_servers(
        self,
        state: ReconcilerState,
        backend: str,
        workload: Workload,
        sources: Sources,
    ) -> bool:
        try:
            servers = self.store.list_entities(EntityKind.SERVER, parent=backend)
        except SwitchyardError as e:
            raise StructuralError(f"cannot list servers of '{backend}': {e}") from e
        existing: dict[str, Server] = {s.name: s for s in servers}

        changed = False
        for replica in workload.replicas:
            entity = entity_id(backend, replica.name)
            server = existing.pop(replica.name, None)
            created = server is None
            moved = False
            if server is None:
                server = Server(name=replica.name, address=replica.address, port=replica.port)
                state.directives.forget_entity(entity)
            elif (server.address, server.port) != (replica.address, replica.port):
                server.address, server.port = replica.address, replica.port
                moved = True

            directives = self._resolve(state, entity, SERVER_UPDATERS, sources)
            updated = apply_directives(server, directives, SERVER_UPDATERS, name=entity)

            if created:
                self.store.create_entity(EntityKind.SERVER, server, parent=backend)
                logger.info("Server created", backend=backend, server=server.name)
                changed = True
            elif moved or updated:
                self.store.update_entity(EntityKind.SERVER, server, parent=backend)
                changed = True

        for stale in existing.values():
            self.store.delete_entity(EntityKind.SERVER, stale.name, parent=backend)
            state.directives.forget_entity(entity_id(backend, stale.name))
            logger.info("Server deleted", backend=backend, server=stale.name)
            changed = True
        return changed

    def _register_path(self, state: ReconcilerState, live: LivePath) -> None:
        path = live.path
        if path.is_ssl_passthrough:
            targets, others = [self.config.ssl_listener], self.config.http_listeners
        else:
            targets, others = self.config.http_listeners, [self.config.ssl_listener]
        state.switching.remove(path.key, *others)
        state.switching.add(
            SwitchingRule(
                key=path.key,
                host=path.host,
                path_prefix=path.path_prefix,
                backend=live.backend,
            ),
            *targets,
        )

    def _remove_path(self, state: ReconcilerState, ref: PathRef) -> None:
        path = ref.path
        state.switching.remove(path.key, *self.config.all_listeners)
        state.rate_limits.discard(path)
        state.directives.forget_entity(ref.entity)
        logger.info("Path removed", route=ref.route.name, path=path.key)

    def _settle(self, batch: PassInput) -> None:
        """Drop deleted paths and mark the rest as seen."""
        for route in batch.routes:
            route.paths = [p for p in route.paths if p.status is not Status.DELETED]
            for path in route.paths:
                path.status = Status.UNCHANGED
