"""Result models for lease and relocation operations."""

from enum import Enum

from pydantic import BaseModel

from ..exceptions import PartialRelocation, WriteFailed
from .slot import Occupant


class ClaimResult(BaseModel):
    """Outcome of a lease claim.

    When the claim is rejected, ``holder`` names the client holding the live
    lease if it could be read back.
    """

    slot_id: int
    claimed: bool
    holder: str | None = None
    forced: bool = False

    model_config = {"frozen": True}


class MoveStatus(str, Enum):
    """How much of a relocation was applied."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    NOOP = "noop"


class MoveStage(str, Enum):
    """Relocation write that failed."""

    DESTINATION = "destination"
    SOURCE = "source"


class MoveResult(BaseModel):
    """Outcome of a move or pool placement."""

    status: MoveStatus
    source_id: int | None = None
    dest_id: int
    moved: Occupant | None = None
    bumped: Occupant | None = None
    stage: MoveStage | None = None
    error: Exception | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def ok(self) -> bool:
        """Check if nothing went wrong (applied fully or nothing to do)."""
        return self.status in (MoveStatus.SUCCESS, MoveStatus.NOOP)

    def raise_for_status(self) -> "MoveResult":
        """Raise if the relocation failed or was only half applied.

        Returns:
            This result, for chaining

        Raises:
            PartialRelocation: If one write landed and the other did not
            WriteFailed: If nothing was applied
        """
        if self.status == MoveStatus.PARTIAL:
            raise PartialRelocation(
                source_id=self.source_id,
                dest_id=self.dest_id,
                stage=self.stage.value if self.stage else "",
                message=(
                    f"Relocation {self.source_id} -> {self.dest_id} stopped at "
                    f"{self.stage.value if self.stage else 'unknown'} write: {self.error}"
                ),
            ) from self.error
        if self.status == MoveStatus.FAILED:
            raise WriteFailed(
                f"Relocation {self.source_id} -> {self.dest_id} failed: {self.error}"
            ) from self.error
        return self
