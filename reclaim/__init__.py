# reclaim package initializer
# Finalizable reference registries: fire a one-shot callback once a tracked value is reclaimed.

from .errors import (
    IllegalIteratorState,
    InvalidValue,
    NoSuchElement,
    ReclaimError,
    ResourceExhausted,
)
from .manager import MemoryManager, default_manager
from .ref_list import FinalizableList
from .ref_set import FinalizableSet, SnapshotCursor
from .tiers import Handle, PhantomHandle, SoftHandle, Tier, WeakHandle

__all__ = [
    "FinalizableList",
    "FinalizableSet",
    "SnapshotCursor",
    "MemoryManager",
    "default_manager",
    "Tier",
    "Handle",
    "WeakHandle",
    "SoftHandle",
    "PhantomHandle",
    "ReclaimError",
    "InvalidValue",
    "NoSuchElement",
    "IllegalIteratorState",
    "ResourceExhausted",
]
