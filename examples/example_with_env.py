"""Example: Using environment variables for the store connection."""

import asyncio
import logging

from dotenv import load_dotenv

from parkgrid import ConfigurationError, ParkGridClient, ParkGridSettings

# Load environment variables from .env file
load_dotenv()
logging.basicConfig(level=logging.INFO)


async def main():
    try:
        settings = ParkGridSettings.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}")
        print("\nCreate a .env file with:")
        print("PARKGRID_URL=https://your-project.supabase.co")
        print("PARKGRID_API_KEY=your_api_key")
        raise SystemExit(1)

    async with ParkGridClient.from_settings(settings) as client:
        print("=== Using Environment Variables ===\n")
        print(f"Client id: {client.client_id}\n")

        def show(event):
            print(f"Board changed: {sorted(event.changed_ids)}")

        client.on_change(show)
        client.on_stale_lease(lambda event: print(f"Lost lease on slot {event.slot_id}"))

        occupied = [slot for slot in client.slots if slot.is_occupied]
        print(f"{len(client.slots)} slots, {len(occupied)} occupied")
        for slot in occupied[:5]:
            print(f"  {slot.id} {slot.label}: {slot.occupant.name} ({slot.occupant.status})")

        # Leases left behind by crashed clients
        freed = await client.sweep_expired()
        print(f"\nSwept {len(freed)} expired leases")

        print("\nWatching for changes for 30 seconds...")
        await asyncio.sleep(30)

        print("\n=== Done ===")


if __name__ == "__main__":
    asyncio.run(main())
