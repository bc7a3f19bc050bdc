"""Tests for the relocation engine."""

import logging

import pytest

from parkgrid import LeaseManager, MoveStatus, RelocationEngine
from parkgrid.exceptions import PartialRelocation, PoolOccupied
from parkgrid.models import MoveStage, SlotPatch

logger = logging.getLogger(__name__)


@pytest.mark.asyncio
async def test_move_to_empty_slot(store, clock, prius):
    """Test occupant transplant and lease clearing."""
    await store.update(1, SlotPatch.place(prius))
    await LeaseManager(store, clock=clock).claim(2, "c9")
    engine = RelocationEngine(store)

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.SUCCESS
    assert result.bumped is None
    source, dest = await store.get(1), await store.get(2)
    assert source.occupant is None
    assert dest.occupant == prius
    assert dest.lease is None
    assert engine.pool is None


@pytest.mark.asyncio
async def test_move_to_occupied_slot_pools_occupant(store, prius, hiace):
    """Test the displaced occupant ends up in the pool."""
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    engine = RelocationEngine(store)

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.SUCCESS
    assert result.bumped == hiace
    assert engine.pool == hiace
    assert (await store.get(1)).occupant is None
    assert (await store.get(2)).occupant == prius


@pytest.mark.asyncio
async def test_move_from_empty_slot_is_noop(store):
    """Test nothing happens when the source is empty."""
    engine = RelocationEngine(store)
    writes = store.write_count

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.NOOP
    assert store.write_count == writes


@pytest.mark.asyncio
async def test_move_onto_itself_is_noop(store, prius):
    await store.update(1, SlotPatch.place(prius))
    engine = RelocationEngine(store)

    result = await engine.move(1, 1)

    assert result.status == MoveStatus.NOOP
    assert (await store.get(1)).occupant == prius


@pytest.mark.asyncio
async def test_move_two_writes_without_transactions(plain_store, prius):
    """Test the non-transactional path issues destination then source."""
    await plain_store.update(1, SlotPatch.place(prius))
    engine = RelocationEngine(plain_store)
    writes = plain_store.write_count

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.SUCCESS
    assert plain_store.write_count == writes + 2
    assert (await plain_store.get(2)).occupant == prius


@pytest.mark.asyncio
async def test_partial_relocation_leaves_duplicate(plain_store, prius, hiace):
    """Test a failed source write reports PARTIAL and is not rolled back."""
    await plain_store.update(1, SlotPatch.place(prius))
    await plain_store.update(2, SlotPatch.place(hiace))
    engine = RelocationEngine(plain_store)

    # First write (destination) succeeds, second (source) fails
    original_update = plain_store.update
    calls = []

    async def flaky_update(ids, patch):
        calls.append(ids)
        if len(calls) == 2:
            plain_store.fail_next()
        await original_update(ids, patch)

    plain_store.update = flaky_update

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.PARTIAL
    assert result.stage == MoveStage.SOURCE
    assert (await plain_store.get(1)).occupant == prius
    assert (await plain_store.get(2)).occupant == prius
    assert engine.pool == hiace
    with pytest.raises(PartialRelocation):
        result.raise_for_status()


@pytest.mark.asyncio
async def test_failed_destination_write_changes_nothing(plain_store, prius):
    """Test a failed first write reports FAILED."""
    await plain_store.update(1, SlotPatch.place(prius))
    engine = RelocationEngine(plain_store)
    plain_store.fail_next()

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.FAILED
    assert result.stage == MoveStage.DESTINATION
    assert (await plain_store.get(1)).occupant == prius
    assert (await plain_store.get(2)).occupant is None


@pytest.mark.asyncio
async def test_failed_transaction_changes_nothing(store, prius, hiace):
    """Test a failed batch leaves both slots untouched."""
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    engine = RelocationEngine(store)
    store.fail_next()

    result = await engine.move(1, 2)

    assert result.status == MoveStatus.FAILED
    assert (await store.get(1)).occupant == prius
    assert (await store.get(2)).occupant == hiace
    assert engine.pool is None


@pytest.mark.asyncio
async def test_place_pooled_chains(store, prius, hiace):
    """Test placing the pool onto an occupied slot swaps the pool."""
    roomy = hiace.model_copy(update={"name": "Alphard"})
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    await store.update(3, SlotPatch.place(roomy))
    engine = RelocationEngine(store)
    await engine.move(1, 2)

    result = await engine.place_pooled(3)

    assert result.status == MoveStatus.SUCCESS
    assert result.source_id is None
    assert (await store.get(3)).occupant == hiace
    assert engine.pool == roomy

    await engine.place_pooled(4)

    assert (await store.get(4)).occupant == roomy
    assert engine.pool is None


@pytest.mark.asyncio
async def test_place_pooled_failure_keeps_pool(store, prius, hiace):
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    engine = RelocationEngine(store)
    await engine.move(1, 2)
    store.fail_next()

    result = await engine.place_pooled(5)

    assert result.status == MoveStatus.FAILED
    assert engine.pool == hiace


@pytest.mark.asyncio
async def test_place_pooled_with_empty_pool(store):
    engine = RelocationEngine(store)

    result = await engine.place_pooled(5)

    assert result.status == MoveStatus.NOOP


@pytest.mark.asyncio
async def test_discard_pool(store, prius, hiace):
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    engine = RelocationEngine(store)
    await engine.move(1, 2)

    assert engine.discard_pool() == hiace
    assert engine.pool is None
    assert not engine.has_pool


@pytest.mark.asyncio
async def test_move_refused_while_pool_is_full(store, prius, hiace):
    """Test a pooled vehicle can never be displaced by another move."""
    corolla = prius.model_copy(update={"name": "Corolla"})
    await store.update(1, SlotPatch.place(prius))
    await store.update(2, SlotPatch.place(hiace))
    await store.update(3, SlotPatch.place(corolla))
    engine = RelocationEngine(store)
    await engine.move(1, 2)
    writes = store.write_count

    with pytest.raises(PoolOccupied):
        await engine.move(3, 2)

    assert store.write_count == writes
    assert engine.pool == hiace
    assert (await store.get(2)).occupant == prius
    assert (await store.get(3)).occupant == corolla

    await engine.place_pooled(1)
    result = await engine.move(3, 2)

    assert result.status == MoveStatus.SUCCESS
    assert engine.pool == prius
    names = sorted(slot.occupant.name for slot in await store.select_all() if slot.occupant)
    assert names == ["Corolla", "Hiace"]
