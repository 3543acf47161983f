"""Map watch events to the keys of the resources that must be reconciled."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
import logging

from marketplace_operator.exceptions import StoreError
from marketplace_operator.manifest import (
    CATALOG_SOURCE_CONFIG_KIND,
    CHILD_RESOURCE_KINDS,
    CLUSTER_SINGLETON_NAME,
    CSC_OWNER_NAME_LABEL,
    CSC_OWNER_NAMESPACE_LABEL,
    OPERATOR_HUB_KIND,
    PROXY_KIND,
    BaseManifest,
    NamedResource,
    OperatorHub,
)
from marketplace_operator.proxy import ProxySync
from marketplace_operator.status import ErrorTracker
from marketplace_operator.store import Store, resource_id_of

from .events import EventType, WatchEvent

__all__ = [
    "Mapper",
    "ChildDeletionMapper",
    "ProxyMapper",
    "OperatorHubMapper",
    "OwnResourceMapper",
]

_LOGGER = logging.getLogger(__name__)


def _in_namespace(obj: BaseManifest, namespace: str | None) -> bool:
    return namespace is None or getattr(obj, "namespace", None) == namespace


class Mapper(ABC):
    """Maps events on objects of some kinds to reconcile requests."""

    kinds: tuple[str, ...] = ()

    def accepts(self, event: WatchEvent) -> bool:
        """Return True if the mapper handles the event."""
        return event.kind in self.kinds

    @abstractmethod
    async def map(self, event: WatchEvent) -> list[NamedResource]:
        """Return the keys of the resources to reconcile."""


class OwnResourceMapper(Mapper):
    """Reconciles a managed resource whenever the resource itself changes.

    When a namespace is given only resources in that namespace are reconciled.
    """

    def __init__(self, kind: str, namespace: str | None = None) -> None:
        self.kinds = (kind,)
        self._namespace = namespace

    def accepts(self, event: WatchEvent) -> bool:
        return super().accepts(event) and _in_namespace(event.obj, self._namespace)

    async def map(self, event: WatchEvent) -> list[NamedResource]:
        return [resource_id_of(event.obj)]


class ChildDeletionMapper(Mapper):
    """Reconciles the owning CatalogSourceConfig when a child is deleted.

    The owner is found through the ownership labels on the child. Deletes
    whose final state is unknown are dropped.
    """

    kinds = CHILD_RESOURCE_KINDS

    def accepts(self, event: WatchEvent) -> bool:
        return (
            super().accepts(event)
            and event.event_type == EventType.DELETE
            and not event.delete_state_unknown
        )

    async def map(self, event: WatchEvent) -> list[NamedResource]:
        labels: dict[str, str] = getattr(event.obj, "labels", None) or {}
        name = labels.get(CSC_OWNER_NAME_LABEL)
        namespace = labels.get(CSC_OWNER_NAMESPACE_LABEL)
        if not name or not namespace:
            return []
        return [NamedResource(CATALOG_SOURCE_CONFIG_KIND, namespace, name)]


def _is_cluster_singleton(obj: BaseManifest | None) -> bool:
    return obj is not None and getattr(obj, "name", None) == CLUSTER_SINGLETON_NAME


class ProxyMapper(Mapper):
    """Refreshes the proxy values and fans out to every owner resource."""

    kinds = (PROXY_KIND,)

    def __init__(
        self,
        store: Store,
        proxy_sync: ProxySync,
        owner_kinds: Iterable[str],
        namespace: str | None = None,
    ) -> None:
        self._store = store
        self._proxy_sync = proxy_sync
        self._owner_kinds = tuple(owner_kinds)
        self._namespace = namespace

    def accepts(self, event: WatchEvent) -> bool:
        return super().accepts(event) and (
            _is_cluster_singleton(event.obj) or _is_cluster_singleton(event.old_obj)
        )

    async def map(self, event: WatchEvent) -> list[NamedResource]:
        try:
            await self._proxy_sync.refresh(self._store)
            requests: list[NamedResource] = []
            for kind in self._owner_kinds:
                requests.extend(
                    resource_id_of(obj)
                    for obj in await self._store.list_objects(kind)
                    if _in_namespace(obj, self._namespace)
                )
        except StoreError as err:
            _LOGGER.error("Unable to refresh cluster proxy: %s", err)
            return []
        _LOGGER.info("Cluster proxy changed, requeueing %d resources", len(requests))
        return requests


class OperatorHubMapper(Mapper):
    """Drops tracked errors of sources the OperatorHub no longer enables."""

    kinds = (OPERATOR_HUB_KIND,)

    def __init__(self, tracker: ErrorTracker) -> None:
        self._tracker = tracker

    def accepts(self, event: WatchEvent) -> bool:
        return super().accepts(event) and _is_cluster_singleton(event.obj)

    async def map(self, event: WatchEvent) -> list[NamedResource]:
        if event.event_type == EventType.DELETE or not isinstance(
            event.obj, OperatorHub
        ):
            self._tracker.sync(OperatorHub())
        else:
            self._tracker.sync(event.obj)
        return []
