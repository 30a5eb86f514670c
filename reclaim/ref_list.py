# reclaim/ref_list.py
# Ordered finalizable list: positional handle registrations with one callback each. Single-writer.

from __future__ import annotations

from typing import Any, Callable, Iterator, List

from .errors import NoSuchElement
from .registry import FinalizableRegistry, check_callback
from .tiers import Handle


class FinalizableList(FinalizableRegistry):
    """
    Index-addressable sequence of handles, duplicates allowed.

    Intended for one writer thread. The internal lock only keeps the worker's
    deletes (map + list) consistent with that writer; interleaving several
    writers is undefined.

    Usage:
      lst = FinalizableList.weak()
      lst.add(obj, lambda: print("gone"))
      lst.get(0).get() is obj
    """

    empty_text = "list is empty"

    def __init__(self, *args: Any, **kw: Any) -> None:
        self._items: List[Handle] = []
        super().__init__(*args, **kw)

    # ---------- mutation ----------

    def add(self, value: Any, callback: Callable[[], Any]) -> bool:
        check_callback(callback)
        with self._mu:
            handle = self._new_handle(value)
            self._callbacks[handle] = callback
            self._items.append(handle)
        return True

    def insert(self, index: int, value: Any, callback: Callable[[], Any]) -> Handle:
        check_callback(callback)
        with self._mu:
            if not 0 <= index <= len(self._items):
                raise NoSuchElement(f"index {index} out of range for insert (size {len(self._items)})")
            handle = self._new_handle(value)
            self._callbacks[handle] = callback
            self._items.insert(index, handle)
        return handle

    def set(self, index: int, value: Any, callback: Callable[[], Any]) -> Handle:
        """Replace the handle at index; the previous callback is dropped without firing. Returns the previous handle."""
        check_callback(callback)
        with self._mu:
            self._check_index(index)
            handle = self._new_handle(value)
            previous = self._items[index]
            self._callbacks.pop(previous, None)
            self._callbacks[handle] = callback
            self._items[index] = handle
        self._release([previous])
        return previous

    def remove(self, handle: Handle) -> bool:
        with self._mu:
            if self._callbacks.pop(handle, None) is None and handle not in self._items:
                return False
            self._unlink(handle)
        self._release([handle])
        return True

    def remove_at(self, index: int) -> Handle:
        with self._mu:
            self._check_index(index)
            handle = self._items.pop(index)
            self._callbacks.pop(handle, None)
        self._release([handle])
        return handle

    def clear(self) -> None:
        with self._mu:
            doomed = list(self._items)
            self._items.clear()
            self._callbacks.clear()
        self._release(doomed)

    # ---------- reads ----------

    def get(self, index: int) -> Handle:
        with self._mu:
            self._check_index(index)
            return self._items[index]

    def handles(self) -> List[Handle]:
        with self._mu:
            return list(self._items)

    def __iter__(self) -> Iterator[Handle]:
        return iter(self.handles())

    def reference_type(self):
        return type(self.get(0))

    def __str__(self) -> str:
        return self._render(self.handles())

    def __repr__(self) -> str:
        tier = self.tier.value if self.tier else "custom"
        return f"<FinalizableList tier={tier} size={self.size()}>"

    # ---------- internals ----------

    def size(self) -> int:
        with self._mu:
            return len(self._items)

    def _unlink(self, handle: Handle) -> None:
        # identity comparison (Handle.__eq__)
        if handle in self._items:
            self._items.remove(handle)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise NoSuchElement(f"index {index} out of range (size {len(self._items)})")


__all__ = ["FinalizableList"]
