"""Pydantic models for parking slots, their occupants and edit leases."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ..utils import (
    COL_AREA,
    COL_ID,
    COL_LABEL,
    COL_LEASE_HEARTBEAT,
    COL_LEASE_HOLDER,
    COL_OCCUPANT,
    format_entry_stamp,
)


class VehicleStatus(str, Enum):
    """Status values offered by the entry form."""

    SOLD_RETAIL = "売約済(小売)"
    SOLD_WHOLESALE = "売約済(AA/業販)"
    IN_STOCK = "在庫"
    TO_AUCTION = "AA行き"
    TO_SCRAP = "解体予定"
    LOANER = "代車"
    RENTAL = "レンタカー"
    INSPECTION = "車検預かり"
    SERVICE = "整備預かり"
    OTHER = "その他"


class Occupant(BaseModel):
    """Vehicle parked in a slot.

    The coordination layer never patches individual fields: an occupant is
    always written as a whole. Unknown fields are kept as-is.
    """

    name: str = ""
    color: str = ""
    status: str = VehicleStatus.IN_STOCK.value
    plate: str = "有"
    car_manager: str = ""
    entry_manager: str = ""
    entry_date: str = ""
    memo: str = ""

    model_config = {"frozen": True, "extra": "allow"}

    def stamped(self, moment: datetime) -> "Occupant":
        """Return a copy with entry_date set to the given moment.

        Args:
            moment: Entry time

        Returns:
            New Occupant with the formatted entry date
        """
        return self.model_copy(update={"entry_date": format_entry_stamp(moment)})


class Lease(BaseModel):
    """Edit lease on a slot.

    A lease with no heartbeat comes from a foreign or legacy writer and is
    always treated as expired.
    """

    holder: str
    heartbeat: datetime | None = None

    model_config = {"frozen": True}


class LeaseState(str, Enum):
    """Lease state of a slot as seen by one client."""

    FREE = "free"
    HELD_BY_ME = "held_by_me"
    HELD_BY_OTHER = "held_by_other"


class Slot(BaseModel):
    """Addressable parking slot."""

    id: int
    label: str = ""
    area: str = ""
    occupant: Occupant | None = None
    lease: Lease | None = None

    model_config = {"frozen": True}

    @property
    def is_occupied(self) -> bool:
        """Check if a vehicle is parked here."""
        return self.occupant is not None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Slot":
        """Build a Slot from a flat store row.

        Args:
            row: Mapping with id, label, area, occupant, lease_holder and
                lease_heartbeat columns

        Returns:
            Slot instance
        """
        holder = row.get(COL_LEASE_HOLDER)
        lease = None
        if holder:
            lease = Lease(holder=holder, heartbeat=row.get(COL_LEASE_HEARTBEAT))

        return cls(
            id=row[COL_ID],
            label=row.get(COL_LABEL) or "",
            area=row.get(COL_AREA) or "",
            occupant=row.get(COL_OCCUPANT),
            lease=lease,
        )

    def to_row(self) -> dict[str, Any]:
        """Flatten this slot into a store row."""
        return {
            COL_ID: self.id,
            COL_LABEL: self.label,
            COL_AREA: self.area,
            COL_OCCUPANT: self.occupant.model_dump() if self.occupant else None,
            COL_LEASE_HOLDER: self.lease.holder if self.lease else None,
            COL_LEASE_HEARTBEAT: self.lease.heartbeat if self.lease else None,
        }


class SlotPatch(BaseModel):
    """Partial update for a slot row.

    Only fields explicitly set are written, so ``SlotPatch(occupant=None)``
    vacates the slot while ``SlotPatch()`` writes nothing.
    """

    occupant: Occupant | None = None
    lease_holder: str | None = None
    lease_heartbeat: datetime | None = None

    model_config = {"frozen": True}

    def to_row(self) -> dict[str, Any]:
        """Get the columns to write."""
        row = self.model_dump(exclude_unset=True)
        if COL_OCCUPANT in row and self.occupant is not None:
            row[COL_OCCUPANT] = self.occupant.model_dump()
        return row

    @classmethod
    def claim(cls, holder: str, heartbeat: datetime) -> "SlotPatch":
        """Patch that hands the edit lease to a client."""
        return cls(lease_holder=holder, lease_heartbeat=heartbeat)

    @classmethod
    def release(cls) -> "SlotPatch":
        """Patch that clears the edit lease."""
        return cls(lease_holder=None, lease_heartbeat=None)

    @classmethod
    def heartbeat(cls, moment: datetime) -> "SlotPatch":
        """Patch that refreshes lease liveness only."""
        return cls(lease_heartbeat=moment)

    @classmethod
    def place(cls, occupant: Occupant | None) -> "SlotPatch":
        """Patch that replaces the occupant wholesale and clears the lease.

        Args:
            occupant: New occupant, or None to vacate the slot
        """
        return cls(occupant=occupant, lease_holder=None, lease_heartbeat=None)
