# reclaim/tiers.py
# Reclamation tiers and tracked handles (weakref.ref subclasses that report to a reclamation queue).

from __future__ import annotations

import weakref
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type

from .errors import InvalidValue


class Tier(str, Enum):
    WEAK = "weak"        # reclaimed as soon as no strong holder remains
    SOFT = "soft"        # pinned by the memory manager until pressure
    PHANTOM = "phantom"  # reclaimed like weak, value never observable


class Handle(weakref.ref):
    """
    Identity token for one (value, tier, queue) triple.

    The weakref callback is the bound queue's put(), so once the value is
    reclaimed the handle itself is pushed onto the queue, at most once.
    Handles compare and hash by identity; a plain weakref would compare by
    referent, which would merge two registrations of the same value.
    """

    tier: Tier = Tier.WEAK

    def __new__(cls, value: Any, queue: Any):
        if value is None:
            raise InvalidValue("cannot track None")
        try:
            return super().__new__(cls, value, queue.put)
        except TypeError as err:
            raise InvalidValue(f"cannot track {type(value).__name__!r} values (no weak reference support)") from err

    def __init__(self, value: Any, queue: Any) -> None:
        super().__init__(value, queue.put)
        self.queue = queue

    def get(self) -> Optional[Any]:
        return self()

    @property
    def reclaimed(self) -> bool:
        # phantom handles are never observable, so read the referent through weakref directly
        return weakref.ref.__call__(self) is None

    def __eq__(self, other: object) -> bool:
        return self is other

    def __ne__(self, other: object) -> bool:
        return self is not other

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        state = "reclaimed" if self.reclaimed else "live"
        return f"<{type(self).__name__} tier={self.tier.value} {state} at {id(self):#x}>"


class WeakHandle(Handle):
    tier = Tier.WEAK


class SoftHandle(Handle):
    """Reads like a weak handle; the memory manager holds the value until pressure."""
    tier = Tier.SOFT


class PhantomHandle(Handle):
    tier = Tier.PHANTOM

    def __call__(self) -> None:
        return None


HANDLE_TYPES: Dict[Tier, Type[Handle]] = {
    Tier.WEAK: WeakHandle,
    Tier.SOFT: SoftHandle,
    Tier.PHANTOM: PhantomHandle,
}

HandleFactory = Callable[[Any, Any], Handle]


def handle_type(tier: Tier | str) -> Type[Handle]:
    return HANDLE_TYPES[Tier(tier)]


def create(tier: Tier | str, value: Any, queue: Any) -> Handle:
    """Create a handle for `value` bound to `queue`. Raises InvalidValue for None/untrackable values."""
    return handle_type(tier)(value, queue)


def make_factory(tier: Tier | str) -> HandleFactory:
    cls = handle_type(tier)

    def factory(value: Any, queue: Any) -> Handle:
        return cls(value, queue)

    factory.__name__ = f"{Tier(tier).value}_factory"
    return factory


def dereference(handle: Handle) -> Optional[Any]:
    return handle.get()


def describe(handle: Handle) -> str:
    """Diagnostic header: '<module.HandleType><<value type>>'."""
    cls = type(handle)
    value = handle.get()
    vtype = type(value) if value is not None else object
    return f"{cls.__module__}.{cls.__qualname__}<{vtype.__module__}.{vtype.__qualname__}>"


__all__ = [
    "Tier",
    "Handle",
    "WeakHandle",
    "SoftHandle",
    "PhantomHandle",
    "HANDLE_TYPES",
    "HandleFactory",
    "handle_type",
    "create",
    "make_factory",
    "dereference",
    "describe",
]
