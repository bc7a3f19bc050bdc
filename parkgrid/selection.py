"""Selection mode and bulk clearing."""

import logging
from collections.abc import Iterable

from .exceptions import SelectionError
from .models import SlotPatch
from .store import SlotStore
from .utils import normalize_ids

logger = logging.getLogger(__name__)


class Selection:
    """Client-local set of slot ids chosen for bulk clearing.

    The set only exists while selection mode is active; leaving the mode
    empties it.
    """

    def __init__(self):
        self._ids: set[int] = set()
        self._active = False

    @property
    def active(self) -> bool:
        """Check if selection mode is on."""
        return self._active

    @property
    def ids(self) -> frozenset[int]:
        """Get the selected slot ids."""
        return frozenset(self._ids)

    def enter(self) -> None:
        """Switch to selection mode."""
        self._active = True

    def exit(self) -> None:
        """Leave selection mode and drop the selection."""
        self._active = False
        self._ids.clear()

    def toggle(self, slot_id: int) -> bool:
        """Select or deselect a slot.

        Args:
            slot_id: Slot to toggle

        Returns:
            True if the slot is now selected

        Raises:
            SelectionError: If selection mode is off
        """
        if not self._active:
            raise SelectionError("Enter selection mode before selecting slots")
        if slot_id in self._ids:
            self._ids.discard(slot_id)
            return False
        self._ids.add(slot_id)
        return True

    def clear(self) -> None:
        """Drop the selection but stay in selection mode."""
        self._ids.clear()

    def prune(self, existing_ids: Iterable[int]) -> None:
        """Forget selected ids that no longer exist in the store."""
        self._ids &= set(existing_ids)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


async def bulk_clear(store: SlotStore, ids: Iterable[int]) -> int:
    """Vacate several slots in one write.

    Occupants and leases are cleared unconditionally, overriding edits in
    progress. Confirm with a human before calling. Unknown ids are ignored.

    Args:
        store: Slot store
        ids: Slots to clear

    Returns:
        Number of ids submitted (0 means no write was issued)

    Raises:
        WriteFailed: If the store could not be reached
    """
    id_list = normalize_ids(ids)
    if not id_list:
        return 0

    await store.update(id_list, SlotPatch.place(None))
    logger.info(f"Bulk cleared {len(id_list)} slots: {id_list}")
    return len(id_list)
