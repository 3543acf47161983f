"""Watch events delivered to the router."""

from dataclasses import dataclass
from enum import StrEnum

from marketplace_operator.manifest import BaseManifest

__all__ = ["EventType", "WatchEvent"]


class EventType(StrEnum):
    """The kind of change observed on an object."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    GENERIC = "Generic"


@dataclass(frozen=True)
class WatchEvent:
    """A change observed on a watched object."""

    event_type: EventType
    obj: BaseManifest

    old_obj: BaseManifest | None = None
    """The previous version of the object for update events."""

    delete_state_unknown: bool = False
    """Set when the delete was inferred and the final state was never seen."""

    @property
    def kind(self) -> str:
        return getattr(self.obj, "kind", "")
