"""Phase reconcilers for CatalogSourceConfig resources.

Initial -> Configuring -> Succeeded, with Configuring looping on itself while
the registry resources cannot be ensured and Succeeded falling back to
Configuring when a child resource goes missing or the registry Deployment has
stale proxy variables.
"""

import logging

from marketplace_operator.manifest import CatalogSourceConfig
from marketplace_operator.phase import Phase
from marketplace_operator.proxy import ProxySync
from marketplace_operator.reconciler import (
    LastKnownGoodCache,
    PhaseDispatcher,
    PhaseReconciler,
    ReconcileResult,
    ResourceDeployer,
)
from marketplace_operator.reconciler.common import (
    FailedReconciler,
    InitialReconciler,
    reset_to_configuring,
    retry_configuring,
    succeeded,
)
from marketplace_operator.store import Store

from .helpers import missing_child_resources, package_ids

__all__ = [
    "validate",
    "ConfiguringReconciler",
    "SucceededReconciler",
    "new_dispatcher",
]

_LOGGER = logging.getLogger(__name__)


def validate(resource: CatalogSourceConfig) -> str | None:
    """Return a message describing why the resource spec is invalid, or None."""
    if not resource.spec.target_namespace:
        return "spec.targetNamespace must be set"
    if not package_ids(resource.spec.packages):
        return "spec.packages must list at least one package"
    return None


class ConfiguringReconciler(PhaseReconciler[CatalogSourceConfig]):
    """Ensures the registry resources of the CatalogSourceConfig exist."""

    phase = Phase.CONFIGURING

    def __init__(
        self,
        deployer: ResourceDeployer,
        cache: LastKnownGoodCache[CatalogSourceConfig],
    ) -> None:
        self._deployer = deployer
        self._cache = cache

    async def reconcile(
        self, resource: CatalogSourceConfig
    ) -> ReconcileResult[CatalogSourceConfig]:
        # The cache is written first so it keeps the pre-failure state.
        self._cache.set(resource)
        try:
            await self._deployer.create_or_ensure(resource)
        except Exception as err:
            return retry_configuring(resource, err)
        self._deployer.populate_status(resource)
        return succeeded(resource)


class SucceededReconciler(PhaseReconciler[CatalogSourceConfig]):
    """Checks that a reconciled CatalogSourceConfig is still converged."""

    phase = Phase.SUCCEEDED

    def __init__(self, store: Store, proxy_sync: ProxySync) -> None:
        self._store = store
        self._proxy_sync = proxy_sync

    async def reconcile(
        self, resource: CatalogSourceConfig
    ) -> ReconcileResult[CatalogSourceConfig]:
        if await missing_child_resources(self._store, resource):
            return reset_to_configuring(resource, "Child resources missing")
        if await self._proxy_sync.workload_needs_update(
            self._store, resource.namespace, resource.name
        ):
            return reset_to_configuring(
                resource, "Proxy environment variables not in sync"
            )
        _LOGGER.debug(
            "No action taken, %s has already been reconciled", resource.resource_id
        )
        return ReconcileResult(resource=resource)


def new_dispatcher(
    store: Store,
    deployer: ResourceDeployer,
    proxy_sync: ProxySync,
    cache: LastKnownGoodCache[CatalogSourceConfig],
    timeout: float | None = None,
) -> PhaseDispatcher[CatalogSourceConfig]:
    """Return the dispatcher with a reconciler for every CatalogSourceConfig phase."""
    return PhaseDispatcher(
        [
            InitialReconciler(validate),
            ConfiguringReconciler(deployer, cache),
            SucceededReconciler(store, proxy_sync),
            FailedReconciler(),
        ],
        timeout=timeout,
    )
