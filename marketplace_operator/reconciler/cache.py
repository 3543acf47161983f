"""In memory record of the last known good state of managed resources."""

import logging
import threading
from typing import Generic, TypeVar

from marketplace_operator.manifest import ManagedResource, NamedResource

__all__ = ["LastKnownGoodCache"]

_LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=ManagedResource)


class LastKnownGoodCache(Generic[R]):
    """Holds a copy of each resource as it was before its latest reconcile.

    The entry is written before any external call is made, so a failure
    part way through leaves readers with the pre-failure state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[NamedResource, R] = {}

    def set(self, resource: R) -> None:
        """Record a copy of the resource."""
        with self._lock:
            self._entries[resource.resource_id] = resource.deep_copy()

    def get(self, resource_id: NamedResource) -> R | None:
        """Return a copy of the recorded resource, None if absent."""
        with self._lock:
            if (entry := self._entries.get(resource_id)) is None:
                return None
            return entry.deep_copy()

    def evict(self, resource_id: NamedResource) -> None:
        """Forget the resource, no-op if absent."""
        with self._lock:
            if self._entries.pop(resource_id, None) is not None:
                _LOGGER.debug("Evicted %s from cache", resource_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
