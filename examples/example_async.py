"""Example: Two clients sharing an in-memory parking grid."""

import asyncio

from parkgrid import (
    ClaimRejected,
    LocalChangeNotifier,
    MemorySlotStore,
    Occupant,
    ParkGridClient,
)
from parkgrid.utils import utcnow


async def main():
    """Main async function."""
    notifier = LocalChangeNotifier()
    store = MemorySlotStore(on_write=notifier.notify)

    async with (
        ParkGridClient(store, notifier, identity="front-desk") as desk,
        ParkGridClient(store, notifier, identity="yard") as yard,
    ):
        print("=== Async ParkGridClient Example ===\n")

        # Create the default 50-slot layout
        print("1. Provisioning slots...")
        created = await desk.provision()
        print(f"Created {created} slots")

        # Register a car
        print("\n2. Front desk registers a car in slot 1...")
        session = await desk.begin_edit(1)
        await session.save(Occupant(name="Prius", color="白").stamped(utcnow()))
        print(f"Slot 1: {desk.get(1).occupant.name}")

        # Editing locks the slot for everyone else
        print("\n3. Front desk opens slot 2, yard tries the same slot...")
        session = await desk.begin_edit(2)
        try:
            await yard.begin_edit(2)
        except ClaimRejected as e:
            print(f"Rejected: {e}")
        await session.cancel()

        # Move onto an occupied slot bumps the occupant into the pool
        print("\n4. Yard moves cars around...")
        session = await yard.begin_edit(3)
        await session.save(Occupant(name="HiAce", color="黒"))
        result = await yard.move(1, 3)
        print(f"Move: {result.status.value}, pooled: {yard.pool.name}")
        result = await yard.place_pooled(10)
        print(f"Placed pooled car: {result.status.value}")

        # Bulk clear a selection
        print("\n5. Clearing a selection...")
        yard.selection.enter()
        yard.selection.toggle(3)
        yard.selection.toggle(10)
        cleared = await yard.bulk_clear()
        print(f"Cleared {cleared} slots")

        await desk.board.wait_idle()
        occupied = [slot.id for slot in desk.slots if slot.is_occupied]
        print(f"\nFront desk sees occupied slots: {occupied}")

        print("\n=== Done ===")


if __name__ == "__main__":
    asyncio.run(main())
