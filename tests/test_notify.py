"""Tests for change notifiers."""

import asyncio

import pytest

from parkgrid import LocalChangeNotifier, MemorySlotStore, PollingChangeNotifier, default_layout
from parkgrid.exceptions import ReadFailed
from parkgrid.models import Occupant, SlotPatch


def test_subscribe_and_unsubscribe():
    notifier = LocalChangeNotifier()
    calls = []

    handle = notifier.subscribe(lambda: calls.append(1))
    notifier.notify()
    notifier.unsubscribe(handle)
    notifier.notify()
    notifier.unsubscribe(handle)

    assert calls == [1]
    assert notifier.subscriber_count == 0


def test_failing_subscriber_does_not_block_others():
    notifier = LocalChangeNotifier()
    calls = []

    def failing():
        raise ValueError("Test error")

    notifier.subscribe(failing)
    notifier.subscribe(lambda: calls.append(1))
    notifier.notify()

    assert calls == [1]


@pytest.mark.asyncio
async def test_memory_store_notifies_own_writes():
    """Test subscribers hear about writes, including their own."""
    notifier = LocalChangeNotifier()
    store = MemorySlotStore(default_layout(count=3), on_write=notifier.notify)
    calls = []
    notifier.subscribe(lambda: calls.append(1))

    await store.update(1, SlotPatch.place(Occupant(name="Note")))
    await store.update(404, SlotPatch.place(None))

    assert calls == [1]


@pytest.mark.asyncio
async def test_poll_once_detects_changes():
    store = MemorySlotStore(default_layout(count=3))
    notifier = PollingChangeNotifier(store, interval=60)
    calls = []
    notifier.subscribe(lambda: calls.append(1))

    assert not await notifier.poll_once()  # baseline
    assert not await notifier.poll_once()

    await store.update(2, SlotPatch.place(Occupant(name="Note")))

    assert await notifier.poll_once()
    assert calls == [1]


@pytest.mark.asyncio
async def test_polling_loop_start_stop():
    store = MemorySlotStore(default_layout(count=3))
    notifier = PollingChangeNotifier(store, interval=0.01)
    calls = []
    notifier.subscribe(lambda: calls.append(1))

    await notifier.start()
    assert notifier.running
    await asyncio.sleep(0.03)
    await store.update(1, SlotPatch.place(Occupant(name="Note")))
    await asyncio.sleep(0.05)
    await notifier.stop()

    assert not notifier.running
    assert len(calls) >= 1


@pytest.mark.asyncio
async def test_polling_survives_read_failures():
    store = MemorySlotStore(default_layout(count=3))
    notifier = PollingChangeNotifier(store, interval=0.01)
    original = store.select_all
    failures = 0

    async def flaky():
        nonlocal failures
        if failures < 2:
            failures += 1
            raise ReadFailed("offline")
        return await original()

    store.select_all = flaky

    await notifier.start()
    await asyncio.sleep(0.08)

    assert notifier.running
    await notifier.stop()
    assert failures == 2
