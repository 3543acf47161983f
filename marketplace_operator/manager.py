"""Wires the store, shared state, controllers and watch routing together."""

import asyncio
from collections.abc import Callable, MutableMapping
import logging
import os

from . import catalogsourceconfig, operatorsource
from .config import OperatorConfig
from .controller import Controller
from .manifest import CatalogSourceConfig, NamedResource, OperatorSource
from .proxy import ProxyStore, ProxySync
from .reconciler import LastKnownGoodCache, ResourceDeployer
from .status import ClusterOperatorCondition, ErrorTracker, degraded_condition
from .store import Store
from .watches import (
    ChildDeletionMapper,
    OperatorHubMapper,
    OwnResourceMapper,
    ProxyMapper,
    WatchRouter,
)

__all__ = ["Manager"]

_LOGGER = logging.getLogger(__name__)


class Manager:
    """Runs the OperatorSource and CatalogSourceConfig controllers."""

    def __init__(
        self,
        store: Store,
        deployer: ResourceDeployer,
        config: OperatorConfig | None = None,
        environ: MutableMapping[str, str] | None = None,
    ) -> None:
        """Initialize the Manager.

        Args:
            store: The object store holding every watched object.
            deployer: Creates the registry resources of a catalog.
            config: Operator configuration.
            environ: Mapping the proxy values are projected into. Defaults to
                the process environment when `project_proxy_env` is set.
        """
        self._store = store
        self._config = config or OperatorConfig()
        if environ is None and self._config.project_proxy_env:
            environ = os.environ
        self.proxy_store = ProxyStore(
            environ, api_available=self._config.proxy_api_available
        )
        self.proxy_sync = ProxySync(self.proxy_store)
        self.tracker = ErrorTracker()
        self.cache: LastKnownGoodCache[CatalogSourceConfig] = LastKnownGoodCache()
        self.packages = operatorsource.PackageIndex()

        csc_config = self._config.catalog_source_config
        self.catalog_source_configs: Controller[CatalogSourceConfig] = Controller(
            CatalogSourceConfig,
            store,
            catalogsourceconfig.new_dispatcher(
                store,
                deployer,
                self.proxy_sync,
                self.cache,
                timeout=csc_config.reconcile_timeout,
            ),
            csc_config,
            on_deleted=self.cache.evict,
            namespace=self._config.namespace,
        )
        opsrc_config = self._config.operator_source
        self.operator_sources: Controller[OperatorSource] = Controller(
            OperatorSource,
            store,
            operatorsource.new_dispatcher(
                store,
                deployer,
                self.proxy_sync,
                self.tracker,
                self.packages,
                timeout=opsrc_config.reconcile_timeout,
            ),
            opsrc_config,
            on_deleted=self._on_operator_source_deleted,
            namespace=self._config.namespace,
        )
        self._controllers: list[Controller] = [
            self.catalog_source_configs,
            self.operator_sources,
        ]

        namespace = self._config.namespace
        self.router = WatchRouter(
            [
                OwnResourceMapper(OperatorSource.kind, namespace),
                OwnResourceMapper(CatalogSourceConfig.kind, namespace),
                ChildDeletionMapper(),
                ProxyMapper(
                    store,
                    self.proxy_sync,
                    [OperatorSource.kind, CatalogSourceConfig.kind],
                    namespace,
                ),
                OperatorHubMapper(self.tracker),
            ]
        )
        for controller in self._controllers:
            self.router.add_sink(controller.kind, controller.enqueue)
        self._detach: Callable[[], None] | None = None
        self._router_task: asyncio.Task[None] | None = None

    def _on_operator_source_deleted(self, key: NamedResource) -> None:
        self.tracker.remove(key.name)
        self.packages.remove(key)

    async def start(self) -> None:
        """Load the proxy values and start routing and reconciling."""
        if self.proxy_store.api_available:
            await self.proxy_sync.refresh(self._store)
        self._router_task = asyncio.create_task(self.router.run(), name="watch-router")
        self._detach = self.router.attach(self._store)
        for controller in self._controllers:
            controller.start()
        _LOGGER.info("Manager started")

    async def close(self) -> None:
        """Stop routing events and shut down the controllers."""
        if self._detach is not None:
            self._detach()
            self._detach = None
        if self._router_task is not None:
            self._router_task.cancel()
            await asyncio.gather(self._router_task, return_exceptions=True)
            self._router_task = None
        for controller in self._controllers:
            await controller.close()
        _LOGGER.info("Manager stopped")

    async def wait_idle(self) -> None:
        """Wait until all routed events and queued keys have been processed."""
        while self.router.pending or any(
            len(controller.queue) or controller.queue.processing
            for controller in self._controllers
        ):
            await asyncio.sleep(0.01)

    def status_conditions(self) -> list[ClusterOperatorCondition]:
        """Return the conditions reported on the cluster operator."""
        return [degraded_condition(self.tracker)]
