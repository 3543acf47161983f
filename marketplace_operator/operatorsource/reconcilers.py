"""Phase reconcilers for OperatorSource resources.

An OperatorSource is configured by handing a derived CatalogSourceConfig to
the resource deployer. Failures are recorded in the error tracker under the
source name so they show up in the aggregated operator status.
"""

import logging

from marketplace_operator.manifest import (
    APP_REGISTRY_TYPE,
    OPSRC_OWNER_NAME_LABEL,
    OPSRC_OWNER_NAMESPACE_LABEL,
    CatalogSourceConfig,
    CatalogSourceConfigSpec,
    OperatorSource,
)
from marketplace_operator.phase import Phase
from marketplace_operator.proxy import ProxySync
from marketplace_operator.reconciler import (
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
from marketplace_operator.status import ErrorTracker, StatusError, StatusErrorReason
from marketplace_operator.store import Store

from .packages import PackageIndex

__all__ = [
    "validate",
    "derived_catalog_source_config",
    "ConfiguringReconciler",
    "SucceededReconciler",
    "new_dispatcher",
]

_LOGGER = logging.getLogger(__name__)


def validate(resource: OperatorSource) -> str | None:
    """Return a message describing why the resource spec is invalid, or None."""
    if resource.spec.type != APP_REGISTRY_TYPE:
        return f"Unsupported registry type {resource.spec.type!r}, expected {APP_REGISTRY_TYPE!r}"
    if not resource.spec.endpoint:
        return "spec.endpoint must be set"
    return None


def derived_catalog_source_config(
    resource: OperatorSource, packages: str
) -> CatalogSourceConfig:
    """Return the CatalogSourceConfig that serves the packages of the source."""
    return CatalogSourceConfig(
        name=resource.name,
        namespace=resource.namespace,
        labels={
            **resource.labels,
            OPSRC_OWNER_NAME_LABEL: resource.name,
            OPSRC_OWNER_NAMESPACE_LABEL: resource.namespace,
        },
        spec=CatalogSourceConfigSpec(
            target_namespace=resource.namespace,
            packages=packages,
            display_name=resource.spec.display_name,
            publisher=resource.spec.publisher,
            source=resource.name,
        ),
    )


class ConfiguringReconciler(PhaseReconciler[OperatorSource]):
    """Ensures the derived CatalogSourceConfig and its registry exist."""

    phase = Phase.CONFIGURING

    def __init__(
        self, deployer: ResourceDeployer, tracker: ErrorTracker, index: PackageIndex
    ) -> None:
        self._deployer = deployer
        self._tracker = tracker
        self._index = index

    async def reconcile(
        self, resource: OperatorSource
    ) -> ReconcileResult[OperatorSource]:
        self._index.record(resource)
        packages = self._index.packages_for(resource)
        derived = derived_catalog_source_config(resource, packages)
        try:
            await self._deployer.create_or_ensure(derived)
        except Exception as err:
            self._tracker.add(
                resource.name, StatusError(StatusErrorReason.ENSURE_RESOURCES, err)
            )
            return retry_configuring(resource, err)
        self._deployer.populate_status(derived)
        self._tracker.remove(resource.name)
        resource.status.packages = packages
        return succeeded(resource)


class SucceededReconciler(PhaseReconciler[OperatorSource]):
    """Checks the registry Deployment of a reconciled OperatorSource for drift."""

    phase = Phase.SUCCEEDED

    def __init__(
        self, store: Store, proxy_sync: ProxySync, index: PackageIndex
    ) -> None:
        self._store = store
        self._proxy_sync = proxy_sync
        self._index = index

    async def reconcile(
        self, resource: OperatorSource
    ) -> ReconcileResult[OperatorSource]:
        if await self._proxy_sync.workload_needs_update(
            self._store, resource.namespace, resource.name
        ):
            self._index.record(resource)
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
    tracker: ErrorTracker,
    index: PackageIndex,
    timeout: float | None = None,
) -> PhaseDispatcher[OperatorSource]:
    """Return the dispatcher with a reconciler for every OperatorSource phase."""
    return PhaseDispatcher(
        [
            InitialReconciler(validate),
            ConfiguringReconciler(deployer, tracker, index),
            SucceededReconciler(store, proxy_sync, index),
            FailedReconciler(),
        ],
        timeout=timeout,
    )
