"""parkgrid - Lease-based coordination for a shared parking grid."""

__version__ = "0.1.0"

# Main client
from .board import SlotBoard
from .client import ParkGridClient
from .config import ParkGridSettings

# Events
from .events import BoardChanged, EventType, StaleLeaseObserved, SyncError

# Exceptions
from .exceptions import (
    ClaimIndeterminate,
    ClaimRejected,
    ConfigurationError,
    LeaseSuperseded,
    ParkGridError,
    PartialRelocation,
    PoolOccupied,
    ReadFailed,
    SelectionError,
    StoreError,
    WriteFailed,
)
from .heartbeat import HeartbeatEmitter
from .identity import ClientIdentity
from .layout import default_layout
from .lease import LeaseManager, is_expired, lease_state

# Models
from .models import (
    ClaimResult,
    Lease,
    LeaseState,
    MoveResult,
    MoveStage,
    MoveStatus,
    Occupant,
    Slot,
    SlotPatch,
    VehicleStatus,
)
from .notify import ChangeNotifier, LocalChangeNotifier, PollingChangeNotifier
from .relocation import RelocationEngine
from .selection import Selection, bulk_clear
from .session import EditSession

# Stores
from .store import MemorySlotStore, PostgrestSlotStore, SlotStore

# Utilities
from .utils import HEARTBEAT_INTERVAL, LEASE_TTL, POLL_INTERVAL, format_entry_stamp, utcnow

__all__ = [
    # Version
    "__version__",
    # Main client
    "ParkGridClient",
    "ParkGridSettings",
    # Coordination
    "LeaseManager",
    "HeartbeatEmitter",
    "EditSession",
    "RelocationEngine",
    "SlotBoard",
    "Selection",
    "bulk_clear",
    "is_expired",
    "lease_state",
    "ClientIdentity",
    "default_layout",
    # Stores and notifiers
    "SlotStore",
    "MemorySlotStore",
    "PostgrestSlotStore",
    "ChangeNotifier",
    "LocalChangeNotifier",
    "PollingChangeNotifier",
    # Models
    "Slot",
    "SlotPatch",
    "Occupant",
    "Lease",
    "LeaseState",
    "VehicleStatus",
    "ClaimResult",
    "MoveResult",
    "MoveStage",
    "MoveStatus",
    # Events
    "BoardChanged",
    "EventType",
    "StaleLeaseObserved",
    "SyncError",
    # Exceptions
    "ParkGridError",
    "ConfigurationError",
    "StoreError",
    "ReadFailed",
    "WriteFailed",
    "ClaimIndeterminate",
    "PartialRelocation",
    "ClaimRejected",
    "LeaseSuperseded",
    "PoolOccupied",
    "SelectionError",
    # Utilities
    "LEASE_TTL",
    "HEARTBEAT_INTERVAL",
    "POLL_INTERVAL",
    "format_entry_stamp",
    "utcnow",
]
