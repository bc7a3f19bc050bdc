"""In-process slot store."""

import asyncio
import copy
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from ..exceptions import WriteFailed
from ..models import Slot, SlotPatch
from ..utils import normalize_ids
from .base import SlotStore
from .predicates import Predicate

logger = logging.getLogger(__name__)


class MemorySlotStore(SlotStore):
    """In-memory slot store (no persistence).

    Every read and write runs under one lock, so a conditional update is
    evaluated and applied atomically just like a database row update.
    Rows are lost when the process exits.
    """

    def __init__(
        self,
        slots: Iterable[Slot] | None = None,
        transactional: bool = True,
        on_write: Callable[[], None] | None = None,
    ):
        """Initialize memory store.

        Args:
            slots: Initial slots
            transactional: Advertise multi-row transactions (default: True)
            on_write: Called after every write that changed something, e.g. a
                change notifier's ``notify``
        """
        self.supports_transactions = transactional
        self._rows: dict[int, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._on_write = on_write
        self._failures: list[Exception] = []
        self.write_count = 0

        for slot in slots or []:
            self._rows[slot.id] = slot.to_row()

    def fail_next(self, error: Exception | None = None, times: int = 1) -> None:
        """Make the next write(s) fail, for exercising error paths.

        Args:
            error: Exception to raise (default: WriteFailed)
            times: Number of consecutive writes to fail
        """
        for _ in range(times):
            self._failures.append(error or WriteFailed("Simulated store failure"))

    def _check_failure(self) -> None:
        if self._failures:
            raise self._failures.pop(0)

    def _written(self) -> None:
        self.write_count += 1
        if self._on_write is not None:
            self._on_write()

    async def select_all(self) -> list[Slot]:
        async with self._lock:
            return [Slot.from_row(self._rows[slot_id]) for slot_id in sorted(self._rows)]

    async def get(self, slot_id: int) -> Slot | None:
        async with self._lock:
            row = self._rows.get(slot_id)
            return Slot.from_row(row) if row is not None else None

    async def conditional_update(
        self, slot_id: int, predicate: Predicate, patch: SlotPatch
    ) -> int:
        # Yield first so concurrent callers interleave the way network calls do
        await asyncio.sleep(0)
        async with self._lock:
            self._check_failure()
            row = self._rows.get(slot_id)
            if row is None or not predicate.matches(row):
                logger.debug(f"Conditional update on slot {slot_id} matched no rows")
                return 0
            row.update(copy.deepcopy(patch.to_row()))
        self._written()
        return 1

    async def update(self, ids: int | Iterable[int], patch: SlotPatch) -> None:
        await asyncio.sleep(0)
        values = patch.to_row()
        async with self._lock:
            self._check_failure()
            touched = 0
            for slot_id in normalize_ids(ids):
                row = self._rows.get(slot_id)
                if row is not None:
                    row.update(copy.deepcopy(values))
                    touched += 1
        if touched:
            self._written()

    async def insert(self, slots: Sequence[Slot]) -> None:
        async with self._lock:
            self._check_failure()
            for slot in slots:
                if slot.id in self._rows:
                    raise WriteFailed(f"Slot {slot.id} already exists")
            for slot in slots:
                self._rows[slot.id] = slot.to_row()
        if slots:
            self._written()

    async def apply_batch(self, writes: Sequence[tuple[int, SlotPatch]]) -> None:
        if not self.supports_transactions:
            return await super().apply_batch(writes)

        await asyncio.sleep(0)
        async with self._lock:
            self._check_failure()
            staged = {slot_id: dict(row) for slot_id, row in self._rows.items()}
            for slot_id, patch in writes:
                if slot_id in staged:
                    staged[slot_id].update(copy.deepcopy(patch.to_row()))
            self._rows = staged
        if writes:
            self._written()

    def rows(self) -> list[dict[str, Any]]:
        """Get a copy of the raw rows, ordered by id."""
        return [copy.deepcopy(self._rows[slot_id]) for slot_id in sorted(self._rows)]

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._rows

    def __repr__(self) -> str:
        return f"MemorySlotStore({len(self._rows)} slots, transactional={self.supports_transactions})"
