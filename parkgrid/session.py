"""Edit session: a claimed lease with its heartbeat."""

import logging
from collections.abc import Awaitable, Callable

from .exceptions import LeaseSuperseded, StoreError
from .heartbeat import HeartbeatEmitter
from .lease import LeaseManager
from .models import Occupant, Slot, SlotPatch
from .store.predicates import Eq
from .utils import COL_LEASE_HOLDER

logger = logging.getLogger(__name__)


class EditSession:
    """Open edit form on one slot.

    Created by ``ParkGridClient.begin_edit`` after a successful claim. While
    open, the heartbeat keeps the lease alive. Closing it by ``save`` or
    ``cancel`` stops the heartbeat and clears the lease.
    """

    def __init__(
        self,
        leases: LeaseManager,
        slot: Slot,
        client_id: str,
        heartbeat: HeartbeatEmitter,
        on_close: Callable[["EditSession"], Awaitable[None]] | None = None,
        forced: bool = False,
    ):
        """Initialize edit session.

        Args:
            leases: Lease manager that granted the claim
            slot: Slot as read right after the claim
            client_id: Durable id of this client
            heartbeat: Emitter for this slot (started by ``open``)
            on_close: Awaited after the session closes
            forced: Whether the lease was taken by force
        """
        self.leases = leases
        self.slot = slot
        self.client_id = client_id
        self.heartbeat = heartbeat
        self.forced = forced
        self.lost = False
        self._on_close = on_close
        self._closed = False

    @property
    def slot_id(self) -> int:
        return self.slot.id

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_lost(self) -> None:
        """Record that the lease was cleared or taken over and stop renewing it."""
        self.lost = True
        self.heartbeat.cancel()

    def draft(self) -> Occupant:
        """Get the occupant to pre-fill the form with (blank for empty slots)."""
        return self.slot.occupant or Occupant()

    def open(self) -> "EditSession":
        """Start the heartbeat."""
        self.heartbeat.start()
        return self

    async def save(self, occupant: Occupant | None) -> None:
        """Write the edited occupant and release the lease.

        The write only lands while this client still holds the lease.

        Args:
            occupant: Full replacement occupant, or None to vacate the slot

        Raises:
            LeaseSuperseded: If the lease was taken over or cleared meanwhile
                (the session is closed and nothing was written)
            WriteFailed: If the store failed; the session stays open and the
                heartbeat resumes unless the lease was lost
            RuntimeError: If the session is already closed
        """
        if self._closed:
            raise RuntimeError(f"Edit session on slot {self.slot_id} is closed")

        await self.heartbeat.stop()
        try:
            affected = await self.leases.store.conditional_update(
                self.slot_id, Eq(COL_LEASE_HOLDER, self.client_id), SlotPatch.place(occupant)
            )
        except StoreError:
            if not self.lost:
                self.heartbeat.start()
            raise

        await self._close()
        if not affected:
            holder = await self.leases.current_holder(self.slot_id)
            raise LeaseSuperseded(self.slot_id, holder)
        logger.info(f"Saved slot {self.slot_id}")

    async def cancel(self) -> None:
        """Close the form without saving.

        The release is best-effort: if it fails the lease expires on its own.
        Cancelling a closed session does nothing.
        """
        if self._closed:
            return

        await self.heartbeat.stop()
        try:
            await self.leases.release(self.slot_id, self.client_id)
        except StoreError as e:
            logger.warning(f"Could not release slot {self.slot_id}, lease will expire: {e}")
        await self._close()

    async def _close(self) -> None:
        self._closed = True
        if self._on_close is not None:
            await self._on_close(self)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.cancel()
