"""Pydantic models for parkgrid.

You can import from specific modules:
    from parkgrid.models.slot import Slot, Occupant, Lease
    from parkgrid.models.results import ClaimResult, MoveResult

Or from the main models module:
    from parkgrid.models import Slot, Occupant, MoveResult
"""

# Slot models
from .slot import Lease, LeaseState, Occupant, Slot, SlotPatch, VehicleStatus

# Result models
from .results import ClaimResult, MoveResult, MoveStage, MoveStatus

__all__ = [
    # Slot models
    "Slot",
    "SlotPatch",
    "Occupant",
    "Lease",
    "LeaseState",
    "VehicleStatus",
    # Result models
    "ClaimResult",
    "MoveResult",
    "MoveStage",
    "MoveStatus",
]
