# reclaim/registry.py
# Shared core of the finalizable registries: handle → callback map, reclamation queue, worker wiring, header and diagnostics.

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, Union

from .config import RECLAIMCFG, ReclaimConfig
from .errors import NoSuchElement
from .manager import MemoryManager, default_manager
from .metrics import note_created, note_removed
from .tiers import Handle, HandleFactory, Tier, describe, make_factory
from .worker import Callback, ErrorSink, ReclamationWorker

TierOrFactory = Union[Tier, str, HandleFactory]

PLACEHOLDER = "some object"


class FinalizableRegistry:
    """
    Base for FinalizableSet / FinalizableList.

    Owns the callback map and the reclamation queue; the worker only claims
    entries through _claim(). Every read-then-write of the map happens under
    self._mu. Callbacks never run under the lock.
    """

    empty_text = "registry is empty"

    def __init__(
        self,
        tier: TierOrFactory = Tier.WEAK,
        *,
        manager: Optional[MemoryManager] = None,
        on_error: Optional[ErrorSink] = None,
        config: Optional[ReclaimConfig] = None,
        name: Optional[str] = None,
    ) -> None:
        self.cfg = config or RECLAIMCFG
        if callable(tier):
            # custom handle factory; tier is learned from the first handle
            self._factory: HandleFactory = tier
            self.tier: Optional[Tier] = None
        else:
            self.tier = Tier(tier)
            self._factory = make_factory(self.tier)
        self.manager = manager or default_manager()

        self._mu = threading.RLock()
        self._queue: "queue.SimpleQueue[Handle]" = queue.SimpleQueue()
        self._callbacks: Dict[Handle, Callback] = {}
        self._header = ""
        self._active = True

        self._worker = ReclamationWorker(self._queue, self._claim, name=name, on_error=on_error, config=self.cfg)
        self._worker.start()

    # ---------- construction helpers ----------

    @classmethod
    def weak(cls, **kw: Any):
        return cls(Tier.WEAK, **kw)

    @classmethod
    def soft(cls, **kw: Any):
        return cls(Tier.SOFT, **kw)

    @classmethod
    def phantom(cls, **kw: Any):
        return cls(Tier.PHANTOM, **kw)

    # ---------- lifecycle ----------

    def destroy(self) -> None:
        """
        Stop the worker and mark the registry inactive. Idempotent, callable from
        any thread. Entries stay registered; values reclaimed afterwards never
        fire. Soft pins held for this registry are released, so its soft values
        become collectable like weak ones. Required to let a registry that is
        itself tracked be collected.
        """
        with self._mu:
            if not self._active:
                return
            self._active = False
            handles = list(self._callbacks)
        self._worker.stop()
        for h in handles:
            self.manager.forget(h)

    @property
    def active(self) -> bool:
        return self._active

    def __enter__(self):
        return self

    def __exit__(self, *exc: Any) -> None:
        self.destroy()

    # ---------- queries ----------

    def size(self) -> int:
        with self._mu:
            return len(self._callbacks)

    def __len__(self) -> int:
        return self.size()

    @property
    def queue(self) -> "queue.SimpleQueue[Handle]":
        return self._queue

    @property
    def header(self) -> str:
        return self._header

    def reference_type(self) -> Type[Handle]:
        with self._mu:
            for h in self._callbacks:
                return type(h)
        raise NoSuchElement("no handles registered")

    def health(self) -> Dict[str, Any]:
        with self._mu:
            size = len(self._callbacks)
        out: Dict[str, Any] = {
            "tier": self.tier.value if self.tier else None,
            "size": size,
            "active": self._active,
            "queue_depth": self._queue.qsize(),
        }
        w = self._worker.health()
        out.update({
            "worker": w["name"],
            "worker_running": w["running"],
            "callbacks_fired": w["fired"],
            "callback_failures": w["callback_failures"],
            "last_failure": w["last_failure"],
        })
        return out

    @property
    def failures(self):
        return list(self._worker.failures)

    # ---------- internals ----------

    def _new_handle(self, value: Any) -> Handle:
        """Create + track a handle for value (caller holds the lock). Raises InvalidValue."""
        handle = self._factory(value, self._queue)
        if not isinstance(handle, Handle):
            raise TypeError(f"handle factory returned {type(handle).__name__}, expected a Handle")
        # an inactive registry never fires, so it holds no soft pins
        if self._active:
            self.manager.track(handle, value)
        if self.tier is None:
            self.tier = handle.tier
        if not self._header:
            self._header = describe(handle)
        note_created(handle.tier, cfg=self.cfg)
        return handle

    def _claim(self, handle: Handle) -> Optional[Callback]:
        """Worker side: remove the entry and hand back its callback, or None if already gone."""
        with self._mu:
            callback = self._callbacks.pop(handle, None)
            if callback is not None:
                self._unlink(handle)
        return callback

    def _unlink(self, handle: Handle) -> None:
        """Hook for subclasses keeping extra structure next to the map (lock held)."""

    def _release(self, handles: Iterable[Handle]) -> int:
        """Forget handles dropped by the caller (outside the lock). Returns count."""
        n = 0
        for h in handles:
            self.manager.forget(h)
            note_removed(h.tier, cfg=self.cfg)
            n += 1
        return n

    def _render(self, handles: List[Handle]) -> str:
        if not handles:
            contents = self.empty_text
        else:
            lines = []
            for h in handles:
                v = h.get()
                lines.append(PLACEHOLDER if v is None else str(v))
            contents = "\n".join(lines)
        return f"{self._header}\n{contents}" if self._header else contents


def check_callback(callback: Callable[[], Any]) -> None:
    if not callable(callback):
        raise TypeError("callback must be callable")


__all__ = ["FinalizableRegistry", "TierOrFactory", "PLACEHOLDER", "check_callback"]
