"""Store module for holding the objects the operator reconciles and watches."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from marketplace_operator.manifest import BaseManifest, NamedResource

T = TypeVar("T", bound=BaseManifest)


class StoreEvent(str, Enum):
    """Enum for store events."""

    OBJECT_ADDED = "object_added"
    OBJECT_UPDATED = "object_updated"
    OBJECT_DELETED = "object_deleted"


def resource_id_of(obj: BaseManifest) -> NamedResource:
    """Return the store key for a manifest object."""
    if (
        not hasattr(obj, "kind")
        or not hasattr(obj, "namespace")
        or not hasattr(obj, "name")
    ):
        raise ValueError("Object must have kind, namespace, and name attributes")
    return NamedResource(obj.kind, obj.namespace, obj.name)


class Store(ABC):
    """Abstract base class for the cluster object store with listener support.

    Every call may block on the network in a real implementation and is
    therefore a coroutine. The store is the only source of truth for the state
    of a resource.
    """

    @abstractmethod
    async def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve an object by resource identity and type, None if not found."""

    @abstractmethod
    async def list_objects(self, kind: str | None = None) -> list[BaseManifest]:
        """List all objects in the store, optionally filtered by kind."""

    @abstractmethod
    async def create_object(self, obj: BaseManifest) -> None:
        """Create an object, raises StoreError if it already exists."""

    @abstractmethod
    async def update_object(self, obj: BaseManifest) -> None:
        """Replace an object, raises ObjectNotFoundError if it does not exist."""

    @abstractmethod
    async def delete_object(self, resource_id: NamedResource) -> None:
        """Delete an object, raises ObjectNotFoundError if it does not exist."""

    @abstractmethod
    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[[NamedResource, BaseManifest], None],
        flush: bool = False,
    ) -> Callable[[], None]:
        """Register a callback for a specific event (object added, updated, deleted).

        When flush is set, the callback is invoked for every existing object.
        Returns a callable that can be called to remove the listener.
        """
