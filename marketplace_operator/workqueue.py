"""Work queue of resource keys waiting to be reconciled.

A key is queued at most once, and a key that is being processed is never
handed to a second worker. Adding a key while it is processed marks it dirty
and it is queued again once the worker calls `done`.
"""

import asyncio
from collections import deque
from collections.abc import Hashable
import logging
from typing import Generic, TypeVar

from .exceptions import WorkQueueShutdown

__all__ = ["WorkQueue"]

_LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class WorkQueue(Generic[K]):
    """Coalescing queue with per key exponential backoff."""

    def __init__(self, base_delay: float = 0.005, max_delay: float = 1000.0) -> None:
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._queue: deque[K] = deque()
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._failures: dict[K, int] = {}
        self._timers: set[asyncio.TimerHandle] = set()
        self._ready = asyncio.Event()
        self._shutdown = False

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def processing(self) -> int:
        """Number of keys currently handed out to workers."""
        return len(self._processing)

    @property
    def shutting_down(self) -> bool:
        return self._shutdown

    def add(self, key: K) -> None:
        """Mark the key as needing processing."""
        if self._shutdown or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._ready.set()

    async def get(self) -> K:
        """Wait for the next key and mark it as being processed."""
        while not self._queue:
            if self._shutdown:
                raise WorkQueueShutdown()
            self._ready.clear()
            await self._ready.wait()
        key = self._queue.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key: K) -> None:
        """Mark the key as processed, requeueing it if it was added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutdown:
            self._queue.append(key)
            self._ready.set()

    def add_after(self, key: K, delay: float) -> None:
        """Add the key once the delay in seconds has passed."""
        if self._shutdown:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def fire() -> None:
            self._timers.discard(handle)
            self.add(key)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)

    def add_rate_limited(self, key: K) -> None:
        """Add the key after its backoff delay and record another failure."""
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self._base_delay * 2**failures, self._max_delay)
        _LOGGER.debug("Requeueing %s in %0.3fs (attempt %d)", key, delay, failures + 1)
        self.add_after(key, delay)

    def forget(self, key: K) -> None:
        """Reset the backoff of the key."""
        self._failures.pop(key, None)

    def num_requeues(self, key: K) -> int:
        return self._failures.get(key, 0)

    def shutdown(self) -> None:
        """Stop accepting keys and release waiting workers."""
        self._shutdown = True
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        self._queue.clear()
        self._ready.set()
