"""Controller that drives one kind of managed resource through its phases.

The controller owns a work queue of resource keys and a pool of worker tasks.
Each worker takes a key, reads the latest object from the store, dispatches it
to the reconciler for its phase and writes the resulting status back. Failed
reconciles are requeued with exponential backoff.
"""

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Generic, TypeVar

from .config import ControllerConfig
from .exceptions import (
    RetryableError,
    StoreError,
    UnknownPhaseError,
    WorkQueueShutdown,
    WrongReconcilerInvokedError,
)
from .manifest import ManagedResource, NamedResource
from .reconciler import PhaseDispatcher, apply_transition
from .store import Store, resource_id_of
from .workqueue import WorkQueue

__all__ = ["Controller"]

_LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=ManagedResource)

DeletedCallback = Callable[[NamedResource], Awaitable[None] | None]


class Controller(Generic[R]):
    """Reconciles all resources of a single managed kind."""

    def __init__(
        self,
        cls: type[R],
        store: Store,
        dispatcher: PhaseDispatcher[R],
        config: ControllerConfig | None = None,
        on_deleted: DeletedCallback | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            cls: The managed resource type handled by the controller.
            store: The object store holding the resources.
            dispatcher: The dispatcher with the phase reconcilers.
            config: Worker and backoff configuration.
            on_deleted: Called with the key of a resource no longer in the store.
            namespace: Only resources in this namespace are resynced, None for all.
        """
        self._cls = cls
        self._store = store
        self._dispatcher = dispatcher
        self._config = config or ControllerConfig()
        self._on_deleted = on_deleted
        self._namespace = namespace
        self._queue: WorkQueue[NamedResource] = WorkQueue(
            base_delay=self._config.base_delay, max_delay=self._config.max_delay
        )
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def kind(self) -> str:
        return self._cls.kind

    @property
    def queue(self) -> WorkQueue[NamedResource]:
        return self._queue

    def enqueue(self, key: NamedResource) -> None:
        """Request a reconcile of the resource."""
        if key.kind != self.kind:
            raise ValueError(f"Controller for {self.kind} cannot handle {key}")
        self._queue.add(key)

    def start(self) -> None:
        """Start the worker tasks and the periodic resync."""
        if self._tasks:
            raise RuntimeError(f"Controller for {self.kind} already started")
        for i in range(self._config.workers):
            self._tasks.append(
                asyncio.create_task(self._worker(), name=f"{self.kind}-worker-{i}")
            )
        if self._config.resync_interval:
            self._tasks.append(
                asyncio.create_task(self._resync_loop(), name=f"{self.kind}-resync")
            )
        _LOGGER.info(
            "Started %s controller with %d workers", self.kind, self._config.workers
        )

    async def close(self) -> None:
        """Stop the workers and wait for them to exit."""
        self._queue.shutdown()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def resync(self) -> None:
        """Enqueue every resource of the managed kind."""
        for obj in await self._store.list_objects(self.kind):
            key = resource_id_of(obj)
            if self._namespace is None or key.namespace == self._namespace:
                self._queue.add(key)

    async def _resync_loop(self) -> None:
        assert self._config.resync_interval
        while True:
            await asyncio.sleep(self._config.resync_interval)
            try:
                await self.resync()
            except StoreError as err:
                _LOGGER.warning("Resync of %s failed: %s", self.kind, err)

    async def _worker(self) -> None:
        while True:
            try:
                key = await self._queue.get()
            except WorkQueueShutdown:
                return
            try:
                await self.process(key)
            finally:
                self._queue.done(key)

    async def process(self, key: NamedResource) -> None:
        """Reconcile the resource and requeue it on failure."""
        try:
            requeue = await self.reconcile(key)
        except (WrongReconcilerInvokedError, UnknownPhaseError) as err:
            _LOGGER.error("Dropping %s: %s", key, err)
            self._queue.forget(key)
            return
        except (RetryableError, StoreError) as err:
            _LOGGER.warning("Reconcile of %s failed, will retry: %s", key, err)
            self._queue.add_rate_limited(key)
            return
        except Exception:
            _LOGGER.exception("Unexpected error reconciling %s", key)
            self._queue.add_rate_limited(key)
            return
        if requeue:
            self._queue.add_rate_limited(key)
        else:
            self._queue.forget(key)

    async def reconcile(self, key: NamedResource) -> bool:
        """Run one reconcile of the resource.

        Returns True if the reconciler reported an error and the resource
        should be requeued.
        """
        resource = await self._store.get_object(key, self._cls)
        if resource is None:
            _LOGGER.debug("Resource %s no longer exists", key)
            if self._on_deleted is not None:
                ret = self._on_deleted(key)
                if ret is not None:
                    await ret
            return False
        result = await self._dispatcher.dispatch(resource)
        updated = apply_transition(result)
        if updated != resource:
            await self._store.update_object(updated)
        if result.error is not None:
            _LOGGER.info("Reconcile of %s returned error: %s", key, result.error)
            return True
        return False
