"""Slot store interface.

Implement this interface to plug in another persistence technology. A store
only has to offer atomic single-row conditional updates that report how many
rows they touched; multi-row transactions are optional.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from ..models import Slot, SlotPatch
from .predicates import Predicate


class SlotStore(ABC):
    """Abstract base class for slot stores."""

    #: Whether ``apply_batch`` applies several row writes atomically.
    supports_transactions: bool = False

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release any resources held by the store."""
        pass

    @abstractmethod
    async def select_all(self) -> list[Slot]:
        """Read every slot, ordered by id.

        Returns:
            List of Slot objects

        Raises:
            ReadFailed: If the store cannot be read
        """
        pass

    @abstractmethod
    async def get(self, slot_id: int) -> Slot | None:
        """Read a single slot.

        Args:
            slot_id: Slot id

        Returns:
            Slot if it exists, None otherwise

        Raises:
            ReadFailed: If the store cannot be read
        """
        pass

    @abstractmethod
    async def conditional_update(
        self, slot_id: int, predicate: Predicate, patch: SlotPatch
    ) -> int:
        """Apply a patch to one slot if the predicate holds, atomically.

        Args:
            slot_id: Slot id
            predicate: Condition evaluated together with the write
            patch: Columns to write

        Returns:
            Number of rows affected (0 or 1)

        Raises:
            WriteFailed: If the store could not be reached
        """
        pass

    @abstractmethod
    async def update(self, ids: int | Iterable[int], patch: SlotPatch) -> None:
        """Apply a patch unconditionally to one or more slots.

        Unknown ids are ignored.

        Args:
            ids: Slot id or ids
            patch: Columns to write

        Raises:
            WriteFailed: If the store could not be reached
        """
        pass

    @abstractmethod
    async def insert(self, slots: Sequence[Slot]) -> None:
        """Provision new slots.

        Args:
            slots: Slots to create

        Raises:
            WriteFailed: If the store could not be reached
        """
        pass

    async def apply_batch(self, writes: Sequence[tuple[int, SlotPatch]]) -> None:
        """Apply several unconditional row writes as one transaction.

        Only available when ``supports_transactions`` is True.

        Args:
            writes: (slot id, patch) pairs applied in order

        Raises:
            WriteFailed: If the transaction failed (nothing was applied)
        """
        raise NotImplementedError(f"{type(self).__name__} does not support transactions")
