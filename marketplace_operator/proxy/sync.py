"""Keep the proxy variables of managed workloads in sync with the cluster proxy."""

from collections.abc import Sequence
import logging

from marketplace_operator.manifest import (
    CLUSTER_SINGLETON_NAME,
    DEPLOYMENT_KIND,
    PROXY_KIND,
    ClusterProxy,
    Deployment,
    EnvVar,
    NamedResource,
    ProxyConfig,
)
from marketplace_operator.store import Store

from . import envvar
from .store import ProxyStore

__all__ = ["ProxySync", "CLUSTER_PROXY_ID"]

_LOGGER = logging.getLogger(__name__)

CLUSTER_PROXY_ID = NamedResource(PROXY_KIND, None, CLUSTER_SINGLETON_NAME)


class ProxySync:
    """Computes the desired proxy environment of a managed workload."""

    def __init__(self, proxy_store: ProxyStore) -> None:
        """Initialize ProxySync with the shared ProxyStore."""
        self._proxy_store = proxy_store

    @property
    def proxy_store(self) -> ProxyStore:
        return self._proxy_store

    def manage(self, env: Sequence[EnvVar]) -> list[EnvVar]:
        """Return the env list with the proxy variables set to current values.

        Existing proxy entries are dropped and every non-empty value is then
        appended at the end in NO_PROXY, HTTP_PROXY, HTTPS_PROXY order. All
        other entries keep their relative order.
        """
        proxy_vars = self._proxy_store.env_vars()
        result = list(env)
        for var in proxy_vars:
            result = envvar.remove_by_name(result, var.name)
        return envvar.merge(result, [var for var in proxy_vars if var.value])

    def needs_update(self, env: Sequence[EnvVar]) -> bool:
        """Return True if the proxy variables in the env list are stale."""
        managed = self.manage(env)
        if len(managed) != len(env):
            return True
        current = {var.name: var.value for var in env}
        return any(
            var.name in current and current[var.name] != var.value for var in managed
        )

    def deployment_needs_update(self, deployment: Deployment | None) -> bool:
        """Return True if the Deployment has to be updated with new proxy values.

        Always False when the cluster does not serve the proxy API or the
        Deployment does not exist.
        """
        if not self._proxy_store.api_available or deployment is None:
            return False
        if not self.needs_update(deployment.env):
            return False
        _LOGGER.debug(
            "Deployment %s/%s proxy variables out of sync: %s",
            deployment.namespace,
            deployment.name,
            sorted(envvar.diff(deployment.env, self.manage(deployment.env))),
        )
        return True

    async def workload_needs_update(
        self, store: Store, namespace: str, name: str
    ) -> bool:
        """Return True if the named Deployment has stale proxy variables."""
        if not self._proxy_store.api_available:
            return False
        deployment = await store.get_object(
            NamedResource(DEPLOYMENT_KIND, namespace, name), Deployment
        )
        return self.deployment_needs_update(deployment)

    async def refresh(self, store: Store) -> bool:
        """Load the proxy values from the cluster proxy object.

        A missing cluster proxy clears the values. Returns True if the values
        changed.
        """
        cluster_proxy = await store.get_object(CLUSTER_PROXY_ID, ClusterProxy)
        if cluster_proxy is None:
            _LOGGER.debug("Cluster proxy %s not found, clearing values", CLUSTER_PROXY_ID)
            return self._proxy_store.set(ProxyConfig())
        return self._proxy_store.set(cluster_proxy.status)
