"""Slot store backends."""

from .base import SlotStore
from .memory import MemorySlotStore
from .postgrest import PostgrestSlotStore
from .predicates import And, Eq, IsNull, Lt, Or, Predicate

__all__ = [
    "SlotStore",
    "MemorySlotStore",
    "PostgrestSlotStore",
    "Predicate",
    "IsNull",
    "Eq",
    "Lt",
    "And",
    "Or",
]
