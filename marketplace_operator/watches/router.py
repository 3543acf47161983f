"""Route watch events to the work queues of the controllers."""

import asyncio
from collections.abc import Callable, Iterable
import logging

from marketplace_operator.manifest import BaseManifest, NamedResource
from marketplace_operator.store import Store, StoreEvent

from .events import EventType, WatchEvent
from .mappers import Mapper

__all__ = ["WatchRouter"]

_LOGGER = logging.getLogger(__name__)

_STORE_EVENT_TYPES = {
    StoreEvent.OBJECT_ADDED: EventType.CREATE,
    StoreEvent.OBJECT_UPDATED: EventType.UPDATE,
    StoreEvent.OBJECT_DELETED: EventType.DELETE,
}


class WatchRouter:
    """Applies the registered mappers to watch events.

    Events are published onto an asyncio queue and consumed by `run`, which
    hands every resulting key to the sink registered for the key's kind.
    """

    def __init__(self, mappers: Iterable[Mapper] = ()) -> None:
        """Initialize the WatchRouter."""
        self._mappers: list[Mapper] = list(mappers)
        self._sinks: dict[str, Callable[[NamedResource], None]] = {}
        self._queue: asyncio.Queue[WatchEvent] = asyncio.Queue()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Number of published events that have not been routed yet."""
        return self._pending

    def add_mapper(self, mapper: Mapper) -> None:
        self._mappers.append(mapper)

    def add_sink(self, kind: str, sink: Callable[[NamedResource], None]) -> None:
        """Register the callback that receives keys of the given kind."""
        self._sinks[kind] = sink

    async def route(self, event: WatchEvent) -> list[NamedResource]:
        """Return the de-duplicated keys produced by all matching mappers."""
        requests: list[NamedResource] = []
        for mapper in self._mappers:
            if not mapper.accepts(event):
                continue
            for key in await mapper.map(event):
                if key not in requests:
                    requests.append(key)
        return requests

    def publish(self, event: WatchEvent) -> None:
        """Queue an event for routing."""
        self._pending += 1
        self._queue.put_nowait(event)

    def attach(self, store: Store) -> Callable[[], None]:
        """Publish an event for every change in the store.

        Objects already in the store are published as create events. Returns a
        callable that detaches the router.
        """
        removers = []
        for store_event, event_type in _STORE_EVENT_TYPES.items():

            def listener(
                _: NamedResource, obj: BaseManifest, event_type: EventType = event_type
            ) -> None:
                self.publish(WatchEvent(event_type, obj))

            removers.append(
                store.add_listener(
                    store_event,
                    listener,
                    flush=store_event == StoreEvent.OBJECT_ADDED,
                )
            )

        def detach() -> None:
            for remove in removers:
                remove()

        return detach

    async def run(self) -> None:
        """Consume published events until cancelled."""
        while True:
            event = await self._queue.get()
            try:
                for key in await self.route(event):
                    if (sink := self._sinks.get(key.kind)) is None:
                        _LOGGER.warning("No controller registered for %s", key)
                        continue
                    sink(key)
            except Exception:
                _LOGGER.exception(
                    "Failed to route %s event for %s", event.event_type, event.kind
                )
            finally:
                self._pending -= 1
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every published event has been routed."""
        await self._queue.join()
