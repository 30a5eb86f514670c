# reclaim/ref_set.py
# Thread-safe finalizable set: value-deduplicated view over independent handle registrations, snapshot cursor, start/stop lifecycle.

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Set

from .errors import IllegalIteratorState, NoSuchElement
from .registry import FinalizableRegistry, check_callback
from .tiers import Handle


class FinalizableSet(FinalizableRegistry):
    """
    Unordered registry of (handle → callback). The same value may be added many
    times; each add gets its own handle and its callback fires independently.
    Reads (snapshot, iteration, membership) are deduplicated by identity.

    Phantom sets never observe their values: add() always reports "absent",
    remove() always returns False and snapshots are empty.

    Do not close over the value in its own callback; the callback is held
    strongly, so the value would never become unreachable.
    """

    empty_text = "set is empty"

    # ---------- mutation ----------

    def add(self, value: Any, callback: Callable[[], Any]) -> bool:
        """Register callback for value. True if no other live handle already wraps value."""
        check_callback(callback)
        with self._mu:
            handle = self._new_handle(value)
            was_present = any(h.get() is value for h in self._callbacks)
            self._callbacks[handle] = callback
        return not was_present

    def remove(self, value: Any) -> bool:
        """Drop every handle wrapping value, firing none of them. True if anything was removed."""
        if value is None:
            return False
        with self._mu:
            doomed = [h for h in self._callbacks if h.get() is value]
            for h in doomed:
                del self._callbacks[h]
        return self._release(doomed) > 0

    def clear(self) -> None:
        with self._mu:
            doomed = list(self._callbacks)
            self._callbacks.clear()
        self._release(doomed)

    # ---------- reads ----------

    def __contains__(self, value: Any) -> bool:
        if value is None:
            return False
        with self._mu:
            return any(h.get() is value for h in self._callbacks)

    def handles(self) -> List[Handle]:
        with self._mu:
            return list(self._callbacks)

    def snapshot(self) -> List[Any]:
        """Distinct (by identity) live values, taken under one lock acquisition."""
        out: List[Any] = []
        seen: Set[int] = set()
        with self._mu:
            for h in self._callbacks:
                v = h.get()
                if v is None or id(v) in seen:
                    continue
                seen.add(id(v))
                out.append(v)
        return out

    to_list = snapshot

    def __iter__(self) -> Iterator[Any]:
        return iter(self.snapshot())

    def cursor(self) -> "SnapshotCursor":
        return SnapshotCursor(self, self.snapshot())

    def __str__(self) -> str:
        with self._mu:
            handles = list(self._callbacks)
        return self._render(handles)

    def __repr__(self) -> str:
        tier = self.tier.value if self.tier else "custom"
        return f"<FinalizableSet tier={tier} size={self.size()} active={self.active}>"


class SnapshotCursor:
    """
    Stateful cursor over a deduplicated snapshot.

    remove() drops *all* handles for the value last returned by next(); it needs
    a fresh next() each time. Also a plain Python iterator (StopIteration at the
    end), while next() past the end raises NoSuchElement.
    """

    def __init__(self, owner: FinalizableSet, values: List[Any]) -> None:
        self._owner = owner
        self._values = values
        self._i = 0
        self._can_remove = False

    def has_next(self) -> bool:
        return self._i < len(self._values)

    def next(self) -> Any:
        if self._i >= len(self._values):
            raise NoSuchElement("cursor exhausted")
        v = self._values[self._i]
        self._i += 1
        self._can_remove = True
        return v

    def remove(self) -> bool:
        if not self._can_remove:
            raise IllegalIteratorState("remove() needs a preceding next()")
        self._can_remove = False
        return self._owner.remove(self._values[self._i - 1])

    def __iter__(self) -> "SnapshotCursor":
        return self

    def __next__(self) -> Any:
        if not self.has_next():
            raise StopIteration
        return self.next()


__all__ = ["FinalizableSet", "SnapshotCursor"]
