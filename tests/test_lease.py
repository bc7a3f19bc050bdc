"""Tests for the lease manager."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from parkgrid import LEASE_TTL, LeaseManager, LeaseState, MemorySlotStore, Slot, default_layout
from parkgrid.exceptions import ClaimIndeterminate, WriteFailed
from parkgrid.lease import is_expired, lease_state
from parkgrid.models import Lease

logger = logging.getLogger(__name__)

T0 = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)


def test_is_expired_boundary():
    """Test a heartbeat exactly TTL old is still live."""
    lease = Lease(holder="c1", heartbeat=T0)

    assert not is_expired(lease, T0)
    assert not is_expired(lease, T0 + LEASE_TTL)
    assert is_expired(lease, T0 + LEASE_TTL + timedelta(microseconds=1))


def test_is_expired_without_lease_or_heartbeat():
    """Test missing leases and heartbeat-less leases count as expired."""
    assert is_expired(None, T0)
    assert is_expired(Lease(holder="legacy"), T0)


def test_lease_state():
    """Test lease state from one client's perspective."""
    slot = Slot(id=1, lease=Lease(holder="c1", heartbeat=T0))

    assert lease_state(slot, "c1", T0) == LeaseState.HELD_BY_ME
    assert lease_state(slot, "c2", T0) == LeaseState.HELD_BY_OTHER
    assert lease_state(slot, "c2", T0 + timedelta(minutes=6)) == LeaseState.FREE
    assert lease_state(Slot(id=2), "c1", T0) == LeaseState.FREE


@pytest.mark.asyncio
async def test_claim_free_slot(store, clock):
    """Test claiming a free slot writes holder and heartbeat."""
    leases = LeaseManager(store, clock=clock)

    result = await leases.claim(7, "c1")

    assert result.claimed
    assert result.holder == "c1"
    slot = await store.get(7)
    assert slot.lease == Lease(holder="c1", heartbeat=T0)


@pytest.mark.asyncio
async def test_claim_lifecycle_scenario(store, clock):
    """Test rejection while the lease is live and takeover after the TTL."""
    leases = LeaseManager(store, clock=clock)

    assert (await leases.claim(7, "c1")).claimed

    clock.advance(minutes=1)
    rejected = await leases.claim(7, "c2")
    assert not rejected.claimed
    assert rejected.holder == "c1"

    clock.advance(minutes=5)
    taken = await leases.claim(7, "c2")
    assert taken.claimed
    slot = await store.get(7)
    assert slot.lease.holder == "c2"
    assert slot.lease.heartbeat == clock.now


@pytest.mark.asyncio
async def test_claim_at_exact_ttl_is_rejected(store, clock):
    """Test a lease exactly TTL old still blocks other clients."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(3, "c1")

    clock.advance(minutes=5)

    assert not (await leases.claim(3, "c2")).claimed


@pytest.mark.asyncio
async def test_reclaim_own_lease_refreshes_heartbeat(store, clock):
    """Test the holder can claim again."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(3, "c1")
    clock.advance(minutes=2)

    result = await leases.claim(3, "c1")

    assert result.claimed
    assert (await store.get(3)).lease.heartbeat == clock.now


@pytest.mark.asyncio
async def test_claim_heartbeatless_lease(clock):
    """Test a holder without heartbeat never blocks a claim."""
    store = MemorySlotStore([Slot(id=1, lease=Lease(holder="legacy"))])
    leases = LeaseManager(store, clock=clock)

    assert (await leases.claim(1, "c1")).claimed


@pytest.mark.asyncio
async def test_concurrent_claims_exactly_one_wins(store, clock):
    """Test N racing claims on one slot produce a single holder."""
    leases = LeaseManager(store, clock=clock)
    clients = [f"c{i}" for i in range(20)]

    results = await asyncio.gather(*(leases.claim(5, client) for client in clients))

    winners = [result for result in results if result.claimed]
    assert len(winners) == 1
    assert (await store.get(5)).lease.holder == winners[0].holder
    assert all(result.holder == winners[0].holder for result in results)


@pytest.mark.asyncio
async def test_claim_store_failure_is_indeterminate(store, clock):
    """Test transport errors surface as ClaimIndeterminate."""
    leases = LeaseManager(store, clock=clock)
    store.fail_next()

    with pytest.raises(ClaimIndeterminate) as exc_info:
        await leases.claim(2, "c1")

    assert isinstance(exc_info.value, WriteFailed)
    assert exc_info.value.slot_id == 2
    assert (await store.get(2)).lease is None


@pytest.mark.asyncio
async def test_force_claim_overrides_live_lease(store, clock):
    """Test force claim takes over regardless of the holder."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(4, "c1")

    result = await leases.force_claim(4, "c2")

    assert result.claimed
    assert result.forced
    assert (await store.get(4)).lease.holder == "c2"


@pytest.mark.asyncio
async def test_release_by_holder(store, clock):
    """Test the holder's release clears both lease columns."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(4, "c1")

    assert await leases.release(4, "c1")

    row = next(row for row in store.rows() if row["id"] == 4)
    assert row["lease_holder"] is None
    assert row["lease_heartbeat"] is None


@pytest.mark.asyncio
async def test_release_by_non_holder_is_noop(store, clock):
    """Test a non-holder release never touches the lease."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(4, "c1")
    writes = store.write_count

    assert not await leases.release(4, "c2")

    assert store.write_count == writes
    assert (await store.get(4)).lease.holder == "c1"


@pytest.mark.asyncio
async def test_force_release_all(store, clock):
    """Test every held lease is cleared."""
    leases = LeaseManager(store, clock=clock)
    await leases.claim(1, "c1")
    await leases.claim(6, "c2")

    released = await leases.force_release_all()

    assert released == [1, 6]
    assert all(slot.lease is None for slot in await store.select_all())


@pytest.mark.asyncio
async def test_force_release_all_without_leases(store, clock):
    """Test nothing is written when no lease is held."""
    leases = LeaseManager(store, clock=clock)
    writes = store.write_count

    assert await leases.force_release_all() == []
    assert store.write_count == writes


@pytest.mark.asyncio
async def test_sweep_expired_spares_live_leases(clock):
    """Test the sweep clears only leases past the TTL."""
    store = MemorySlotStore(default_layout(count=3))
    leases = LeaseManager(store, clock=clock)
    await leases.claim(1, "c1")
    clock.advance(minutes=4)
    await leases.claim(2, "c2")
    clock.advance(minutes=2)

    swept = await leases.sweep_expired()

    assert swept == [1]
    assert (await store.get(1)).lease is None
    assert (await store.get(2)).lease.holder == "c2"
