"""Custom exceptions for parkgrid package."""


class ParkGridError(Exception):
    """Base exception for all parkgrid errors."""

    pass


class ConfigurationError(ParkGridError):
    """Raised when required settings are missing or invalid."""

    pass


class StoreError(ParkGridError):
    """Raised when the slot store cannot be reached or rejects a request."""

    pass


class ReadFailed(StoreError):
    """Raised when reading slots from the store fails."""

    pass


class WriteFailed(StoreError):
    """Raised when a mutation fails at the store layer.

    The mutation may or may not have been applied. Refresh before trusting
    local state.
    """

    pass


class ClaimIndeterminate(WriteFailed):
    """Raised when a lease claim could not be confirmed either way."""

    def __init__(self, slot_id: int, message: str):
        super().__init__(message)
        self.slot_id = slot_id


class PartialRelocation(WriteFailed):
    """Raised when one relocation write succeeded and the other failed."""

    def __init__(self, source_id: int | None, dest_id: int, stage: str, message: str):
        super().__init__(message)
        self.source_id = source_id
        self.dest_id = dest_id
        self.stage = stage


class ClaimRejected(ParkGridError):
    """Raised when another client holds a live lease on the slot."""

    def __init__(self, slot_id: int, holder: str | None = None):
        who = holder if holder else "another client"
        super().__init__(f"Slot {slot_id} is being edited by {who}")
        self.slot_id = slot_id
        self.holder = holder


class LeaseSuperseded(ClaimRejected):
    """Raised when saving an edit whose lease was taken over or cleared."""

    pass


class PoolOccupied(ParkGridError):
    """Raised when a move could displace a vehicle while the pool is full."""

    def __init__(self, pooled_name: str):
        super().__init__(
            f"Pool already holds {pooled_name!r}; place or discard it before moving again"
        )
        self.pooled_name = pooled_name


class SelectionError(ParkGridError):
    """Raised when selection operations are used outside selection mode."""

    pass
