"""Heartbeat emitter keeping an edit lease alive."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from .exceptions import StoreError
from .models import SlotPatch
from .store import SlotStore
from .utils import HEARTBEAT_INTERVAL, to_seconds, utcnow

logger = logging.getLogger(__name__)


class HeartbeatEmitter:
    """Periodically refresh the heartbeat of one slot's lease.

    The write is not conditioned on the holder: the claim already established
    ownership, and a takeover by another client shows up at the next refresh.
    A failed tick is not retried; the next tick tries again.
    """

    def __init__(
        self,
        store: SlotStore,
        slot_id: int,
        interval: timedelta | float = HEARTBEAT_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize heartbeat emitter.

        Args:
            store: Slot store
            slot_id: Slot whose lease is kept alive
            interval: Time between heartbeats (default: 30 seconds)
            clock: Returns the current time
        """
        self.store = store
        self.slot_id = slot_id
        self.interval = to_seconds(interval)
        self.clock = clock
        self.beats = 0
        self.missed = 0
        self._task: asyncio.Task | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        """Check if the heartbeat task is active."""
        return self._task is not None and not self._task.done() and not self._stopping

    def start(self) -> None:
        """Start emitting heartbeats. Calling it twice has no effect."""
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Heartbeat started for slot {self.slot_id} (every {self.interval}s)")

    def cancel(self) -> None:
        """Request the heartbeat task to stop without waiting for it."""
        if self._task is not None:
            self._stopping = True
            self._task.cancel()

    async def stop(self) -> None:
        """Stop emitting heartbeats.

        No heartbeat is written after this returns.
        """
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Heartbeat stopped for slot {self.slot_id}")

    async def beat(self) -> bool:
        """Write one heartbeat.

        Returns:
            True if the write succeeded
        """
        try:
            await self.store.update(self.slot_id, SlotPatch.heartbeat(self.clock()))
        except StoreError as e:
            self.missed += 1
            logger.warning(f"Heartbeat for slot {self.slot_id} failed: {e}")
            return False
        self.beats += 1
        return True

    async def _run(self) -> None:
        """Heartbeat loop."""
        while True:
            await asyncio.sleep(self.interval)
            await self.beat()
