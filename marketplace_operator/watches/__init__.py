"""Watch event routing.

Changes to managed resources, their children and the cluster singletons are
turned into `WatchEvent`s. The `WatchRouter` maps each event to the keys of
the managed resources that have to be reconciled.
"""

from .events import EventType, WatchEvent
from .mappers import (
    ChildDeletionMapper,
    Mapper,
    OperatorHubMapper,
    OwnResourceMapper,
    ProxyMapper,
)
from .router import WatchRouter

__all__ = [
    "EventType",
    "WatchEvent",
    "Mapper",
    "ChildDeletionMapper",
    "OperatorHubMapper",
    "OwnResourceMapper",
    "ProxyMapper",
    "WatchRouter",
]
