"""Reconciliation loop: keep the local slot view in line with the store.

Change notifications carry no payload, so every notification and every local
write is answered the same way: read every slot and replace local state.
Lost, duplicated or reordered notifications are harmless because each read is
self-sufficient. Notifications arriving while a read is in flight collapse
into a single follow-up read.
"""

import asyncio
import logging

from .events import (
    BoardChanged,
    BoardChangedCallback,
    ErrorCallback,
    StaleLeaseCallback,
    StaleLeaseObserved,
    SyncError,
)
from .exceptions import StoreError
from .models import Slot
from .selection import Selection
from .store import SlotStore

logger = logging.getLogger(__name__)


class SlotBoard:
    """Local cache of all slots plus the client-local edit bookkeeping."""

    def __init__(self, store: SlotStore, client_id: str, selection: Selection | None = None):
        """Initialize slot board.

        Args:
            store: Slot store (the source of truth)
            client_id: Durable id of this client
            selection: Selection to prune when slots disappear
        """
        self.store = store
        self.client_id = client_id
        self.selection = selection
        self.refresh_count = 0

        self._slots: dict[int, Slot] = {}
        self._refresh_lock = asyncio.Lock()
        self._dirty = False
        self._drain_task: asyncio.Task | None = None

        # Slot whose edit form is open, and whether a conflict was reported for it
        self._editing: int | None = None
        self._stale_reported = False

        self._change_callbacks: list[BoardChangedCallback] = []
        self._stale_callbacks: list[StaleLeaseCallback] = []
        self._error_callbacks: list[ErrorCallback] = []

    @property
    def slots(self) -> list[Slot]:
        """Get all slots ordered by id."""
        return [self._slots[slot_id] for slot_id in sorted(self._slots)]

    @property
    def editing(self) -> int | None:
        """Get the id of the slot whose edit session is open."""
        return self._editing

    def get(self, slot_id: int) -> Slot | None:
        """Get a slot from local state.

        Args:
            slot_id: Slot id

        Returns:
            Slot if known locally, None otherwise
        """
        return self._slots.get(slot_id)

    def on_change(self, callback: BoardChangedCallback) -> None:
        """Register callback for refreshed state."""
        self._change_callbacks.append(callback)

    def on_stale_lease(self, callback: StaleLeaseCallback) -> None:
        """Register callback for lost leases on the slot being edited."""
        self._stale_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        """Register callback for background refresh failures."""
        self._error_callbacks.append(callback)

    def begin_editing(self, slot_id: int) -> None:
        """Record that this client holds an open edit session on a slot."""
        self._editing = slot_id
        self._stale_reported = False

    def end_editing(self) -> None:
        """Record that the edit session closed."""
        self._editing = None
        self._stale_reported = False

    async def refresh(self) -> list[Slot]:
        """Read every slot and replace local state.

        Returns:
            The new slot list

        Raises:
            ReadFailed: If the store could not be read (local state is kept)
        """
        async with self._refresh_lock:
            fresh = await self.store.select_all()
            previous = self._slots
            self._slots = {slot.id: slot for slot in fresh}
            self.refresh_count += 1

            changed = sorted(
                slot_id
                for slot_id in previous.keys() | self._slots.keys()
                if previous.get(slot_id) != self._slots.get(slot_id)
            )
            if self.selection is not None:
                self.selection.prune(self._slots)

            logger.debug(f"Refreshed {len(fresh)} slots, {len(changed)} changed")
            self._emit_change(BoardChanged(slots=self.slots, changed_ids=changed))
            self._check_open_lease()
            return self.slots

    def notify(self) -> None:
        """Change-notifier callback: schedule a refresh.

        Safe to call any number of times; calls made while a refresh is
        running lead to exactly one more refresh.
        """
        self._dirty = True
        if self._drain_task is not None and not self._drain_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, refresh deferred")
            return
        self._drain_task = loop.create_task(self._drain())

    async def try_refresh(self) -> bool:
        """Refresh, reporting a failure to error callbacks instead of raising.

        Returns:
            True if local state was replaced
        """
        try:
            await self.refresh()
        except StoreError as e:
            logger.error(f"Refresh failed: {e}")
            self._emit_error(
                SyncError(
                    error=e,
                    error_type=type(e).__name__,
                    message=f"Refresh failed: {e}",
                    recoverable=True,
                )
            )
            return False
        return True

    async def _drain(self) -> None:
        while self._dirty:
            self._dirty = False
            await self.try_refresh()

    async def wait_idle(self) -> None:
        """Wait until scheduled refreshes have finished."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    async def close(self) -> None:
        """Cancel any scheduled refresh."""
        if self._drain_task is not None:
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
            self._drain_task = None

    def _check_open_lease(self) -> None:
        if self._editing is None or self._stale_reported:
            return

        slot = self._slots.get(self._editing)
        holder = slot.lease.holder if slot is not None and slot.lease is not None else None
        if holder == self.client_id:
            return

        self._stale_reported = True
        logger.warning(
            f"Lease on slot {self._editing} lost: now "
            f"{'held by ' + holder if holder else 'cleared'}"
        )
        self._emit_stale(
            StaleLeaseObserved(
                slot_id=self._editing,
                expected_holder=self.client_id,
                observed_holder=holder,
                slot=slot,
            )
        )

    def _emit_change(self, event: BoardChanged) -> None:
        for callback in self._change_callbacks.copy():
            try:
                callback(event)
            except Exception as e:  # noqa: BLE001 - Must catch all callback errors
                logger.error(f"Change callback error: {e}")

    def _emit_stale(self, event: StaleLeaseObserved) -> None:
        for callback in self._stale_callbacks.copy():
            try:
                callback(event)
            except Exception as e:  # noqa: BLE001 - Must catch all callback errors
                logger.error(f"Stale lease callback error: {e}")

    def _emit_error(self, error: SyncError) -> None:
        for callback in self._error_callbacks.copy():
            try:
                callback(error)
            except Exception as callback_error:  # noqa: BLE001 - Prevent error cascade
                logger.error(f"Error callback failed: {callback_error}")
