"""Change notifiers: payload-free "something changed" signals."""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import timedelta

from .exceptions import StoreError
from .store import SlotStore
from .utils import POLL_INTERVAL, to_seconds

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


class ChangeNotifier(ABC):
    """Abstract base class for change notifiers.

    Delivery is at-least-once, unordered and carries no payload. Subscribers
    may receive events for their own writes.
    """

    def __init__(self):
        self._subscribers: dict[int, ChangeCallback] = {}
        self._handles = itertools.count(1)

    def subscribe(self, callback: ChangeCallback) -> int:
        """Register a callback.

        Args:
            callback: Called with no arguments whenever the store changed

        Returns:
            Subscription handle for ``unsubscribe``
        """
        handle = next(self._handles)
        self._subscribers[handle] = callback
        logger.debug(f"Subscriber {handle} registered")
        return handle

    def unsubscribe(self, handle: int) -> None:
        """Remove a subscription. Unknown handles are ignored.

        Args:
            handle: Handle returned by ``subscribe``
        """
        self._subscribers.pop(handle, None)

    @property
    def subscriber_count(self) -> int:
        """Get number of active subscriptions."""
        return len(self._subscribers)

    def _emit(self) -> None:
        """Deliver a change signal to all subscribers."""
        for handle, callback in list(self._subscribers.items()):
            try:
                callback()
            except Exception as e:  # noqa: BLE001 - Must catch all callback errors
                logger.error(f"Change callback {handle} failed: {e}")

    async def start(self) -> None:
        """Start delivering events (no-op for push-based notifiers)."""
        pass

    async def stop(self) -> None:
        """Stop delivering events."""
        pass

    @abstractmethod
    def notify(self) -> None:
        """Signal that the store changed."""
        pass


class LocalChangeNotifier(ChangeNotifier):
    """In-process notifier.

    Pair it with ``MemorySlotStore(on_write=notifier.notify)`` so every client
    sharing the store hears about every write, including its own.
    """

    def notify(self) -> None:
        self._emit()


class PollingChangeNotifier(ChangeNotifier):
    """Notifier that polls the store and signals when the data differs.

    Used when the backend offers no push channel. Read failures are logged and
    polling continues on the next interval.
    """

    def __init__(self, store: SlotStore, interval: timedelta | float = POLL_INTERVAL):
        """Initialize polling notifier.

        Args:
            store: Store to poll
            interval: Polling interval (default: 5 seconds)
        """
        super().__init__()
        self._store = store
        self._interval = to_seconds(interval)
        self._fingerprint: list[str] | None = None
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        """Check if the polling task is active."""
        return self._task is not None and not self._task.done()

    def notify(self) -> None:
        self._emit()

    async def poll_once(self) -> bool:
        """Read the store once and emit if it changed since the last poll.

        The first poll only records a baseline.

        Returns:
            True if a change was signalled
        """
        slots = await self._store.select_all()
        fingerprint = [slot.model_dump_json() for slot in slots]
        changed = self._fingerprint is not None and fingerprint != self._fingerprint
        self._fingerprint = fingerprint
        if changed:
            logger.debug("Store changed since last poll")
            self._emit()
        return changed

    async def start(self) -> None:
        """Start the polling task."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """Stop the polling task and wait for it to finish."""
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_loop(self) -> None:
        """Polling loop."""
        logger.info(f"Starting polling loop (interval: {self._interval}s)")

        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except StoreError as e:
                logger.warning(f"Poll failed: {e}")

            # Sleep with interruptible wait
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
