"""Event models emitted by the reconciliation loop."""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from .models import Slot


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    """Types of board events."""

    BOARD_CHANGED = "board_changed"
    STALE_LEASE = "stale_lease"


class BoardEvent(BaseModel):
    """Base board event."""

    event_type: EventType
    timestamp: datetime = Field(default_factory=_now)


class BoardChanged(BoardEvent):
    """Event fired after local state was replaced by a fresh read."""

    event_type: EventType = EventType.BOARD_CHANGED
    slots: list[Slot]
    changed_ids: list[int] = Field(default_factory=list)

    model_config = {"frozen": True}


class StaleLeaseObserved(BoardEvent):
    """Event fired when the slot being edited no longer carries our lease.

    ``observed_holder`` is None when the lease was cleared (bulk clear,
    relocation, force unlock) and another client id when it was taken over.
    The open edit form should be closed or refreshed.
    """

    event_type: EventType = EventType.STALE_LEASE
    slot_id: int
    expected_holder: str
    observed_holder: str | None = None
    slot: Slot | None = None

    model_config = {"frozen": True}

    @property
    def reassigned(self) -> bool:
        """Check if another client now holds the lease."""
        return self.observed_holder is not None


class SyncError(BaseModel):
    """Error event from a background refresh or heartbeat."""

    error: Exception
    error_type: str
    message: str
    timestamp: datetime = Field(default_factory=_now)
    recoverable: bool = True

    model_config = {"frozen": True, "arbitrary_types_allowed": True}


# Callback type aliases
BoardChangedCallback = Callable[[BoardChanged], None]
StaleLeaseCallback = Callable[[StaleLeaseObserved], None]
ErrorCallback = Callable[[SyncError], None]
