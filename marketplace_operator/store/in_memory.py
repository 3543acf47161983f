"""Module for in memory object store."""

import copy
from collections import defaultdict
from collections.abc import Callable
from typing import Any, TypeVar, DefaultDict

import logging

from marketplace_operator.manifest import BaseManifest, NamedResource
from marketplace_operator.exceptions import ObjectNotFoundError, StoreError

from .store import Store, StoreEvent, resource_id_of


_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseManifest)


class InMemoryStore(Store):
    """In-memory implementation of the Store interface.

    Objects are keyed by NamedResource and copied on the way in and out so
    that callers never share state with the store. Supports event listeners
    for object changes.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryStore."""
        self._objects: dict[NamedResource, BaseManifest] = {}
        self._listeners: DefaultDict[StoreEvent, list[Callable[..., None]]] = (
            defaultdict(list)
        )

    async def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve an object by resource identity and type."""
        obj = self._objects.get(resource_id)
        if obj is None:
            return None
        if not isinstance(obj, cls):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
            )
        return copy.deepcopy(obj)

    async def list_objects(self, kind: str | None = None) -> list[BaseManifest]:
        """List all objects in the store, optionally filtered by kind."""
        return [
            copy.deepcopy(obj)
            for obj in self._objects.values()
            if kind is None or getattr(obj, "kind", None) == kind
        ]

    async def create_object(self, obj: BaseManifest) -> None:
        """Create an object in the store."""
        resource_id = resource_id_of(obj)
        if resource_id in self._objects:
            raise StoreError(f"Object {resource_id} already exists")
        _LOGGER.debug("Adding object %s to store", resource_id)
        self._objects[resource_id] = copy.deepcopy(obj)
        self._fire_event(StoreEvent.OBJECT_ADDED, resource_id, obj)

    async def update_object(self, obj: BaseManifest) -> None:
        """Replace an existing object in the store."""
        resource_id = resource_id_of(obj)
        if (existing := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if existing == obj:
            _LOGGER.debug("Object %s unchanged, skipping update", resource_id)
            return
        _LOGGER.debug("Updating existing object %s in store", resource_id)
        self._objects[resource_id] = copy.deepcopy(obj)
        self._fire_event(StoreEvent.OBJECT_UPDATED, resource_id, obj)

    async def delete_object(self, resource_id: NamedResource) -> None:
        """Delete an object from the store."""
        if (obj := self._objects.pop(resource_id, None)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        _LOGGER.debug("Deleted object %s from store", resource_id)
        self._fire_event(StoreEvent.OBJECT_DELETED, resource_id, obj)

    def add_listener(
        self,
        event: StoreEvent,
        callback: Callable[[NamedResource, BaseManifest], None],
        flush: bool = False,
    ) -> Callable[[], None]:
        """Register a callback for a specific event."""

        def remove() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        self._listeners[event].append(callback)

        if flush and event == StoreEvent.OBJECT_ADDED:
            _LOGGER.debug("Flushing objects for event type %s", event)
            for rid, obj in list(self._objects.items()):
                callback(rid, copy.deepcopy(obj))

        return remove

    def _fire_event(self, event: StoreEvent, *args: Any) -> None:
        for cb in list(self._listeners[event]):  # Iterate over a copy for safe removal
            try:
                cb(*args)
            except Exception:
                _LOGGER.exception("Store listener callback failed for event %s", event)
