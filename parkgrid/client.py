"""Unified client for the shared parking grid."""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta

from .board import SlotBoard
from .config import ParkGridSettings
from .events import BoardChangedCallback, ErrorCallback, StaleLeaseCallback, StaleLeaseObserved
from .exceptions import ClaimRejected, StoreError
from .heartbeat import HeartbeatEmitter
from .identity import ClientIdentity
from .layout import default_layout
from .lease import LeaseManager
from .models import LeaseState, MoveResult, Occupant, Slot
from .notify import ChangeNotifier, PollingChangeNotifier
from .relocation import RelocationEngine
from .selection import Selection, bulk_clear
from .session import EditSession
from .store import PostgrestSlotStore, SlotStore
from .utils import HEARTBEAT_INTERVAL, LEASE_TTL, utcnow

logger = logging.getLogger(__name__)


class ParkGridClient:
    """Asynchronous client for one user working on the shared grid.

    Every mutation issued through the client is followed by a full refresh,
    and every change notification schedules one, so ``slots`` converges to
    the store no matter who wrote.
    """

    def __init__(
        self,
        store: SlotStore,
        notifier: ChangeNotifier | None = None,
        identity: ClientIdentity | str | None = None,
        lease_ttl: timedelta = LEASE_TTL,
        heartbeat_interval: timedelta | float = HEARTBEAT_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize parkgrid client.

        Args:
            store: Slot store shared by all clients
            notifier: Change notifier (default: none, refresh only after own writes)
            identity: Client identity or raw client id (default: ephemeral id)
            lease_ttl: Lease time-to-live (default: 5 minutes)
            heartbeat_interval: Time between heartbeats (default: 30 seconds)
            clock: Returns the current time (default: UTC wall clock)
        """
        if identity is None:
            identity = ClientIdentity.ephemeral()
        elif isinstance(identity, str):
            identity = ClientIdentity(identity)

        self.store = store
        self.notifier = notifier
        self.identity = identity
        self.client_id = identity.client_id
        self.heartbeat_interval = heartbeat_interval
        self.clock = clock

        self.leases = LeaseManager(store, ttl=lease_ttl, clock=clock)
        self.relocation = RelocationEngine(store)
        self.selection = Selection()
        self.board = SlotBoard(store, self.client_id, selection=self.selection)
        self.board.on_stale_lease(self._handle_stale_lease)

        self._session: EditSession | None = None
        self._subscription: int | None = None

        logger.debug(f"Initialized ParkGridClient for client: {self.client_id}")

    @classmethod
    def from_settings(cls, settings: ParkGridSettings | None = None) -> "ParkGridClient":
        """Build a client backed by PostgREST with a polling notifier.

        Args:
            settings: Settings (default: read from environment variables)

        Returns:
            ParkGridClient (use it as an async context manager)

        Raises:
            ConfigurationError: If URL or API key is missing
        """
        settings = settings or ParkGridSettings.from_env()
        store = PostgrestSlotStore(
            url=settings.url,
            api_key=settings.api_key,
            table=settings.table,
            timeout=settings.timeout,
        )
        return cls(
            store=store,
            notifier=PollingChangeNotifier(store, interval=settings.poll_interval),
            identity=ClientIdentity.load(settings.identity_path),
            lease_ttl=settings.lease_ttl,
            heartbeat_interval=settings.heartbeat_interval,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        await self.store.__aenter__()
        if self.notifier is not None:
            self._subscription = self.notifier.subscribe(self.board.notify)
            await self.notifier.start()
        try:
            await self.board.refresh()
        except StoreError:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Cancel any open edit, stop listening and close the store."""
        if self._session is not None:
            await self._session.cancel()
        if self.notifier is not None:
            await self.notifier.stop()
            if self._subscription is not None:
                self.notifier.unsubscribe(self._subscription)
                self._subscription = None
        await self.board.close()
        await self.store.close()

    # State

    @property
    def slots(self) -> list[Slot]:
        """Get all slots from the last refresh."""
        return self.board.slots

    def get(self, slot_id: int) -> Slot | None:
        """Get one slot from the last refresh."""
        return self.board.get(slot_id)

    def state_of(self, slot_id: int) -> LeaseState:
        """Get the lease state of a slot for this client.

        Unknown slots are reported as FREE.
        """
        slot = self.board.get(slot_id)
        if slot is None:
            return LeaseState.FREE
        return self.leases.state_of(slot, self.client_id)

    @property
    def session(self) -> EditSession | None:
        """Get the open edit session, if any."""
        return self._session

    @property
    def pool(self) -> Occupant | None:
        """Get the occupant waiting to be placed, if any."""
        return self.relocation.pool

    def on_change(self, callback: BoardChangedCallback) -> None:
        """Register callback for refreshed state."""
        self.board.on_change(callback)

    def on_stale_lease(self, callback: StaleLeaseCallback) -> None:
        """Register callback for a lost lease on the slot being edited."""
        self.board.on_stale_lease(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        """Register callback for background refresh failures."""
        self.board.on_error(callback)

    async def refresh(self) -> list[Slot]:
        """Re-read all slots.

        Raises:
            ReadFailed: If the store could not be read
        """
        return await self.board.refresh()

    # Editing

    async def begin_edit(self, slot_id: int, force: bool = False) -> EditSession:
        """Claim a slot and open an edit session on it.

        A rejection is final for this call; try again later or pass
        ``force=True`` after a human confirmed the takeover.

        Args:
            slot_id: Slot to edit
            force: Take the lease even if another client holds it

        Returns:
            Open EditSession (its heartbeat is running)

        Raises:
            ClaimRejected: If another client holds a live lease, or took it
                over before the session could open
            ClaimIndeterminate: If the claim could not be confirmed; no session
                was opened
            RuntimeError: If another edit session is still open
        """
        if self._session is not None:
            raise RuntimeError(
                f"Edit session on slot {self._session.slot_id} is still open - save or cancel it first"
            )

        if force:
            result = await self.leases.force_claim(slot_id, self.client_id)
        else:
            result = await self.leases.claim(slot_id, self.client_id)

        if not result.claimed:
            await self.board.try_refresh()
            raise ClaimRejected(slot_id, result.holder)

        try:
            await self.board.refresh()
        except StoreError:
            await self._release_quietly(slot_id)
            raise

        # The lease may have been taken over between the claim and the read
        slot = self.board.get(slot_id) or Slot(id=slot_id)
        holder = slot.lease.holder if slot.lease is not None else None
        if holder != self.client_id:
            logger.warning(f"Lease on slot {slot_id} lost right after claiming it (holder: {holder})")
            raise ClaimRejected(slot_id, holder)

        self.board.begin_editing(slot_id)
        heartbeat = HeartbeatEmitter(
            self.store, slot_id, interval=self.heartbeat_interval, clock=self.clock
        )
        self._session = EditSession(
            leases=self.leases,
            slot=slot,
            client_id=self.client_id,
            heartbeat=heartbeat,
            on_close=self._session_closed,
            forced=result.forced,
        ).open()
        return self._session

    async def _release_quietly(self, slot_id: int) -> None:
        try:
            await self.leases.release(slot_id, self.client_id)
        except StoreError as e:
            logger.warning(f"Could not release slot {slot_id}, lease will expire: {e}")

    async def _session_closed(self, session: EditSession) -> None:
        if self._session is session:
            self._session = None
            self.board.end_editing()
        await self.board.try_refresh()

    def _handle_stale_lease(self, event: StaleLeaseObserved) -> None:
        # Our lease is gone: stop renewing it
        if self._session is not None and self._session.slot_id == event.slot_id:
            self._session.mark_lost()

    # Relocation

    async def move(self, source_id: int, dest_id: int) -> MoveResult:
        """Move a vehicle to another slot.

        If the destination was occupied its vehicle lands in the pool.

        Returns:
            MoveResult (call ``raise_for_status()`` to turn failures into errors)

        Raises:
            PoolOccupied: If the pool still holds a vehicle
            ReadFailed: If the slots could not be read before moving
        """
        result = await self.relocation.move(source_id, dest_id)
        await self.board.try_refresh()
        return result

    async def place_pooled(self, dest_id: int) -> MoveResult:
        """Place the pooled vehicle into a slot.

        Returns:
            MoveResult; a vehicle already in that slot becomes the new pool
        """
        result = await self.relocation.place_pooled(dest_id)
        await self.board.try_refresh()
        return result

    def discard_pool(self) -> Occupant | None:
        """Drop the pooled vehicle without placing it."""
        return self.relocation.discard_pool()

    # Bulk operations

    async def bulk_clear(self, ids: Iterable[int] | None = None) -> int:
        """Vacate several slots, overriding any edit in progress on them.

        Confirm with a human before calling.

        Args:
            ids: Slots to clear (default: the current selection, which is
                emptied after a successful clear)

        Returns:
            Number of slots submitted

        Raises:
            WriteFailed: If the store could not be reached
        """
        from_selection = ids is None
        target = self.selection.ids if from_selection else ids

        count = await bulk_clear(self.store, target)
        if from_selection:
            self.selection.clear()
        await self.board.try_refresh()
        return count

    async def force_release_all(self) -> list[int]:
        """Clear every lease held by anyone. Confirm with a human first.

        Returns:
            Ids of slots whose lease was cleared
        """
        released = await self.leases.force_release_all()
        await self.board.try_refresh()
        return released

    async def sweep_expired(self) -> list[int]:
        """Clear leases whose heartbeat is older than the TTL."""
        swept = await self.leases.sweep_expired()
        if swept:
            await self.board.try_refresh()
        return swept

    async def provision(self, slots: Sequence[Slot] | None = None) -> int:
        """Create the yard layout if the store holds no slots yet.

        Args:
            slots: Slots to create (default: ``default_layout()``)

        Returns:
            Number of slots created (0 if the store was not empty)
        """
        existing = await self.store.select_all()
        if existing:
            return 0

        layout = list(slots) if slots is not None else default_layout()
        await self.store.insert(layout)
        await self.board.try_refresh()
        return len(layout)
