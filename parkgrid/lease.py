"""Lease manager: per-slot edit locks without a lock service.

A lease is two columns on the slot row (holder and heartbeat). Claims are
conditional updates, so the store's row atomicity is the only ordering
primitive. Expiry is lazy: nobody has to clear a dead lease, the claim check
simply stops honoring it once the heartbeat is older than the TTL.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from .exceptions import ClaimIndeterminate, StoreError
from .models import ClaimResult, Lease, LeaseState, Slot, SlotPatch
from .store import SlotStore
from .store.predicates import Eq, IsNull, Lt, Or, Predicate
from .utils import COL_LEASE_HEARTBEAT, COL_LEASE_HOLDER, LEASE_TTL, utcnow

logger = logging.getLogger(__name__)


def is_expired(lease: Lease | None, now: datetime, ttl: timedelta = LEASE_TTL) -> bool:
    """Check whether a lease no longer binds anyone.

    Args:
        lease: Lease to check (None counts as expired)
        now: Current time
        ttl: Lease time-to-live (default: 5 minutes)

    Returns:
        True if there is no lease, it has no heartbeat, or the heartbeat is
        more than ``ttl`` old. A heartbeat exactly ``ttl`` old is still live.
    """
    if lease is None or lease.heartbeat is None:
        return True
    return now - lease.heartbeat > ttl


def lease_state(
    slot: Slot, client_id: str, now: datetime, ttl: timedelta = LEASE_TTL
) -> LeaseState:
    """Get the lease state of a slot from one client's point of view.

    Args:
        slot: Slot to inspect
        client_id: Client asking
        now: Current time
        ttl: Lease time-to-live

    Returns:
        LeaseState (an expired lease is FREE)
    """
    if is_expired(slot.lease, now, ttl):
        return LeaseState.FREE
    if slot.lease.holder == client_id:
        return LeaseState.HELD_BY_ME
    return LeaseState.HELD_BY_OTHER


def claimable_by(client_id: str, now: datetime, ttl: timedelta = LEASE_TTL) -> Predicate:
    """Build the claim predicate.

    The row may be claimed when it has no holder, a holder without heartbeat,
    a heartbeat older than ``ttl``, or the claimant already holds it.
    """
    return Or(
        IsNull(COL_LEASE_HOLDER),
        IsNull(COL_LEASE_HEARTBEAT),
        Lt(COL_LEASE_HEARTBEAT, now - ttl),
        Eq(COL_LEASE_HOLDER, client_id),
    )


class LeaseManager:
    """Claim, release and override edit leases on slots."""

    def __init__(
        self,
        store: SlotStore,
        ttl: timedelta = LEASE_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize lease manager.

        Args:
            store: Slot store
            ttl: Lease time-to-live (default: 5 minutes)
            clock: Returns the current time (default: UTC wall clock)
        """
        self.store = store
        self.ttl = ttl
        self.clock = clock

    def is_expired(self, lease: Lease | None) -> bool:
        """Check a lease against the current time and this manager's TTL."""
        return is_expired(lease, self.clock(), self.ttl)

    def state_of(self, slot: Slot, client_id: str) -> LeaseState:
        """Get the lease state of a slot for a client at the current time."""
        return lease_state(slot, client_id, self.clock(), self.ttl)

    async def claim(self, slot_id: int, client_id: str) -> ClaimResult:
        """Try to take the edit lease on a slot.

        A rejection is reported, never retried. Re-claiming a slot this client
        already holds succeeds and refreshes the heartbeat.

        Args:
            slot_id: Slot to claim
            client_id: Durable id of the claiming client

        Returns:
            ClaimResult; ``claimed`` is False when another client's lease is
            live, with ``holder`` set if it could be read back

        Raises:
            ClaimIndeterminate: If the store failed and the outcome is unknown
        """
        now = self.clock()
        try:
            affected = await self.store.conditional_update(
                slot_id, claimable_by(client_id, now, self.ttl), SlotPatch.claim(client_id, now)
            )
        except StoreError as e:
            raise ClaimIndeterminate(slot_id, f"Claim on slot {slot_id} indeterminate: {e}") from e

        if affected:
            logger.info(f"Client {client_id} claimed slot {slot_id}")
            return ClaimResult(slot_id=slot_id, claimed=True, holder=client_id)

        holder = await self.current_holder(slot_id)
        logger.info(f"Claim on slot {slot_id} by {client_id} rejected (held by {holder})")
        return ClaimResult(slot_id=slot_id, claimed=False, holder=holder)

    async def current_holder(self, slot_id: int) -> str | None:
        """Read who holds the lease on a slot (None if nobody or unreadable)."""
        try:
            slot = await self.store.get(slot_id)
        except StoreError as e:
            logger.warning(f"Could not read lease holder of slot {slot_id}: {e}")
            return None
        if slot is None or slot.lease is None:
            return None
        return slot.lease.holder

    async def force_claim(self, slot_id: int, client_id: str) -> ClaimResult:
        """Take the edit lease regardless of who holds it.

        This is the human override for leases whose holder vanished without
        releasing. It discards the other client's right to save.

        Args:
            slot_id: Slot to claim
            client_id: Durable id of the claiming client

        Returns:
            ClaimResult with ``forced`` set

        Raises:
            ClaimIndeterminate: If the store failed and the outcome is unknown
        """
        try:
            await self.store.update(slot_id, SlotPatch.claim(client_id, self.clock()))
        except StoreError as e:
            raise ClaimIndeterminate(
                slot_id, f"Forced claim on slot {slot_id} indeterminate: {e}"
            ) from e

        logger.warning(f"Client {client_id} force-claimed slot {slot_id}")
        return ClaimResult(slot_id=slot_id, claimed=True, holder=client_id, forced=True)

    async def release(self, slot_id: int, client_id: str) -> bool:
        """Give up the edit lease on a slot.

        Releasing a lease held by someone else (or nobody) changes nothing.

        Args:
            slot_id: Slot to release
            client_id: Durable id of the releasing client

        Returns:
            True if this client's lease was cleared

        Raises:
            WriteFailed: If the store could not be reached
        """
        affected = await self.store.conditional_update(
            slot_id, Eq(COL_LEASE_HOLDER, client_id), SlotPatch.release()
        )
        if affected:
            logger.debug(f"Client {client_id} released slot {slot_id}")
        return bool(affected)

    async def force_release_all(self) -> list[int]:
        """Clear every lease on every slot.

        Administrative escape hatch: in-progress edits of all clients lose
        their right to save. Confirm with a human before calling.

        Returns:
            Ids of slots whose lease was cleared

        Raises:
            ReadFailed: If the slots could not be read
            WriteFailed: If the store could not be reached
        """
        slots = await self.store.select_all()
        held = [slot.id for slot in slots if slot.lease is not None]
        if not held:
            return []

        await self.store.update(held, SlotPatch.release())
        logger.warning(f"Force-released leases on {len(held)} slots")
        return held

    async def sweep_expired(self) -> list[int]:
        """Clear leases that have already expired.

        Not needed for correctness since claims ignore expired leases. Each
        clear is conditioned on the heartbeat still being stale, so a lease
        renewed in the meantime survives.

        Returns:
            Ids of slots whose lease was cleared

        Raises:
            ReadFailed: If the slots could not be read
            WriteFailed: If the store could not be reached
        """
        now = self.clock()
        cutoff = now - self.ttl
        stale = Or(IsNull(COL_LEASE_HEARTBEAT), Lt(COL_LEASE_HEARTBEAT, cutoff))

        cleared = []
        for slot in await self.store.select_all():
            if slot.lease is None or not is_expired(slot.lease, now, self.ttl):
                continue
            if await self.store.conditional_update(slot.id, stale, SlotPatch.release()):
                cleared.append(slot.id)

        if cleared:
            logger.info(f"Swept {len(cleared)} expired leases")
        return cleared
