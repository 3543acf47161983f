"""
The store module provides the interface to the cluster object store that holds
the managed resources and the objects they depend on.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py for type safety.
- Fires events on object changes that feed the watch router.

This abstract interface allows for various implementations (in-memory, backed by
a cluster API, etc.).
"""

from .store import Store, StoreEvent, resource_id_of
from .in_memory import InMemoryStore

__all__ = [
    "Store",
    "StoreEvent",
    "InMemoryStore",
    "resource_id_of",
]
