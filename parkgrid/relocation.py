"""Relocation engine: move vehicles between slots.

Without multi-row transactions a move is two independent writes: the
destination first, then the source. If the second write fails the vehicle
shows in both slots until someone moves or clears one of them; the engine
reports this as a partial result and does not roll back.
"""

import logging

from .exceptions import PoolOccupied, StoreError
from .models import MoveResult, MoveStage, MoveStatus, Occupant, SlotPatch
from .store import SlotStore

logger = logging.getLogger(__name__)


class RelocationEngine:
    """Moves occupants between slots and holds a displaced one in the pool.

    The pool is local to this client and holds at most one occupant: when a
    move lands on an occupied slot, the vehicle that was there goes into the
    pool so the user can place it next.
    """

    def __init__(self, store: SlotStore):
        """Initialize relocation engine.

        Args:
            store: Slot store
        """
        self.store = store
        self._pool: Occupant | None = None

    @property
    def pool(self) -> Occupant | None:
        """Get the occupant waiting to be placed, if any."""
        return self._pool

    @property
    def has_pool(self) -> bool:
        """Check if an occupant is waiting to be placed."""
        return self._pool is not None

    def discard_pool(self) -> Occupant | None:
        """Drop the pooled occupant without placing it.

        Returns:
            The discarded occupant, if there was one
        """
        pooled, self._pool = self._pool, None
        if pooled is not None:
            logger.info(f"Discarded pooled occupant {pooled.name!r}")
        return pooled

    async def move(self, source_id: int, dest_id: int) -> MoveResult:
        """Move the occupant of one slot to another.

        Any lease on either slot is cleared. If the destination was occupied,
        its occupant becomes the pool, which must be empty beforehand.

        Args:
            source_id: Slot to move from
            dest_id: Slot to move to

        Returns:
            MoveResult: SUCCESS, PARTIAL (destination written, source not),
            FAILED (nothing written) or NOOP (nothing to move)

        Raises:
            PoolOccupied: If the pool still holds a vehicle; place or discard it
                first
            ReadFailed: If the slots could not be read before moving
        """
        if self._pool is not None:
            raise PoolOccupied(self._pool.name)

        if source_id == dest_id:
            return MoveResult(status=MoveStatus.NOOP, source_id=source_id, dest_id=dest_id)

        source = await self.store.get(source_id)
        if source is None or source.occupant is None:
            logger.debug(f"Nothing to move from slot {source_id}")
            return MoveResult(status=MoveStatus.NOOP, source_id=source_id, dest_id=dest_id)

        dest = await self.store.get(dest_id)
        if dest is None:
            return MoveResult(status=MoveStatus.NOOP, source_id=source_id, dest_id=dest_id)

        moved = source.occupant
        bumped = dest.occupant
        dest_patch = SlotPatch.place(moved)
        source_patch = SlotPatch.place(None)

        if self.store.supports_transactions:
            try:
                await self.store.apply_batch([(dest_id, dest_patch), (source_id, source_patch)])
            except StoreError as e:
                logger.error(f"Move {source_id} -> {dest_id} failed: {e}")
                return MoveResult(
                    status=MoveStatus.FAILED,
                    source_id=source_id,
                    dest_id=dest_id,
                    moved=moved,
                    stage=MoveStage.DESTINATION,
                    error=e,
                )
        else:
            try:
                await self.store.update(dest_id, dest_patch)
            except StoreError as e:
                logger.error(f"Move {source_id} -> {dest_id} failed writing destination: {e}")
                return MoveResult(
                    status=MoveStatus.FAILED,
                    source_id=source_id,
                    dest_id=dest_id,
                    moved=moved,
                    stage=MoveStage.DESTINATION,
                    error=e,
                )

            try:
                await self.store.update(source_id, source_patch)
            except StoreError as e:
                # Occupant now shows in both slots; leave it for the operator
                logger.error(
                    f"Move {source_id} -> {dest_id} only half applied, source not cleared: {e}"
                )
                if bumped is not None:
                    self._pool = bumped
                return MoveResult(
                    status=MoveStatus.PARTIAL,
                    source_id=source_id,
                    dest_id=dest_id,
                    moved=moved,
                    bumped=bumped,
                    stage=MoveStage.SOURCE,
                    error=e,
                )

        if bumped is not None:
            self._pool = bumped
            logger.info(f"Moved slot {source_id} -> {dest_id}, pooled {bumped.name!r}")
        else:
            logger.info(f"Moved slot {source_id} -> {dest_id}")

        return MoveResult(
            status=MoveStatus.SUCCESS,
            source_id=source_id,
            dest_id=dest_id,
            moved=moved,
            bumped=bumped,
        )

    async def place_pooled(self, dest_id: int) -> MoveResult:
        """Place the pooled occupant into a slot.

        If that slot was occupied, its occupant becomes the new pool; the pool
        never holds more than one. On failure the pool is kept.

        Args:
            dest_id: Slot to place into

        Returns:
            MoveResult with no source_id; NOOP when the pool is empty

        Raises:
            ReadFailed: If the destination could not be read
        """
        pooled = self._pool
        if pooled is None:
            return MoveResult(status=MoveStatus.NOOP, dest_id=dest_id)

        dest = await self.store.get(dest_id)
        if dest is None:
            return MoveResult(status=MoveStatus.NOOP, dest_id=dest_id)

        bumped = dest.occupant
        try:
            await self.store.update(dest_id, SlotPatch.place(pooled))
        except StoreError as e:
            logger.error(f"Placing pooled occupant into slot {dest_id} failed: {e}")
            return MoveResult(
                status=MoveStatus.FAILED,
                dest_id=dest_id,
                moved=pooled,
                stage=MoveStage.DESTINATION,
                error=e,
            )

        self._pool = bumped
        logger.info(f"Placed pooled {pooled.name!r} into slot {dest_id}")
        return MoveResult(status=MoveStatus.SUCCESS, dest_id=dest_id, moved=pooled, bumped=bumped)
