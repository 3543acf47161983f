"""Concurrency safe registry of the last error seen for each source."""

import logging
import threading
from typing import Protocol

__all__ = ["EnabledSources", "ErrorTracker"]

_LOGGER = logging.getLogger(__name__)


class EnabledSources(Protocol):
    """The set of sources that are currently expected to be reconciled."""

    def is_present_and_enabled(self, name: str) -> bool:
        """Return True if the source exists and is not disabled."""


class ErrorTracker:
    """Tracks the last error for each source key.

    Entries are added when a source fails to reconcile, removed when it
    succeeds or is deleted, and synced against the enabled sources so that
    stale entries do not permanently degrade the aggregated status. All
    operations hold a single lock.
    """

    def __init__(self) -> None:
        """Initialize an empty ErrorTracker."""
        self._lock = threading.Lock()
        self._errors: dict[str, BaseException] = {}

    def add(self, key: str, err: BaseException) -> None:
        """Record the error for the key, replacing any previous error."""
        with self._lock:
            self._errors[key] = err

    def remove(self, key: str) -> None:
        """Forget the error for the key, no-op if absent."""
        with self._lock:
            self._errors.pop(key, None)

    def get_keys_and_map(self) -> tuple[list[str], dict[str, BaseException]]:
        """Return the tracked keys and a copy of the error map."""
        with self._lock:
            return list(self._errors), dict(self._errors)

    def sync(self, sources: EnabledSources) -> None:
        """Remove every key that is not present and enabled in the sources."""
        with self._lock:
            for key in list(self._errors):
                if not sources.is_present_and_enabled(key):
                    _LOGGER.debug("Dropping tracked error for source %s", key)
                    del self._errors[key]
