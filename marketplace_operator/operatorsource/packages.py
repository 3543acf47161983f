"""Package ids discovered for each OperatorSource.

The ids outlive the status of the source, so a source that is reset to
Configuring still derives a catalog with its full package list.
"""

import logging
import threading

from marketplace_operator.manifest import NamedResource, OperatorSource

__all__ = ["PackageIndex"]

_LOGGER = logging.getLogger(__name__)


class PackageIndex:
    """Concurrency safe map from an OperatorSource to its package ids."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._packages: dict[NamedResource, str] = {}

    def record(self, resource: OperatorSource) -> None:
        """Remember the package ids in the status of the source.

        A status without packages leaves the recorded ids untouched.
        """
        if not resource.status.packages:
            return
        with self._lock:
            self._packages[resource.resource_id] = resource.status.packages

    def packages_for(self, resource: OperatorSource) -> str:
        """Return the package ids of the source, preferring its status."""
        if resource.status.packages:
            return resource.status.packages
        with self._lock:
            return self._packages.get(resource.resource_id, "")

    def remove(self, resource_id: NamedResource) -> None:
        """Forget the package ids of the source, no-op if absent."""
        with self._lock:
            if self._packages.pop(resource_id, None) is not None:
                _LOGGER.debug("Dropped package ids of %s", resource_id)
