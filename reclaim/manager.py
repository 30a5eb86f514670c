# reclaim/manager.py
# Memory manager: tier-aware reachability on top of CPython refcounting + gc. Pins soft values until pressure; optional RSS watchdog.
from __future__ import annotations

import gc
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from .config import RECLAIMCFG, ReclaimConfig
from .errors import ResourceExhausted
from .tiers import Handle, Tier, create as create_handle
from .metrics import note_soft_release
from .utils import dbg

# Providers you pass from your app
GetRssMb = Callable[[], float]        # resident set size in MB
CollectFn = Callable[[], int]         # one reclamation pass, returns unreachable count

_MISSING = object()


class MemoryManager:
    """
    Decides when tracked values become reclaimable:

      - weak / phantom: plain reference counting; the handle's weakref callback
        pushes it onto its queue as soon as the last strong holder goes away
        (or on the next collect() for values caught in reference cycles).
      - soft: track() pins the value (strong reference held here). Pins are only
        dropped under memory pressure: relieve_pressure() without enough other
        reclaimable memory, guard() catching a MemoryError, or step() seeing RSS
        above the soft limit. After that the value behaves like a weak one.

    Handles report at most once (weakref callbacks run once).
    """

    def __init__(
        self,
        *,
        get_rss_mb: Optional[GetRssMb] = None,
        soft_limit_mb: Optional[float] = None,
        collect_fn: CollectFn = gc.collect,
        config: Optional[ReclaimConfig] = None,
    ) -> None:
        self.cfg = config or RECLAIMCFG
        self.get_rss_mb = get_rss_mb
        self.soft_limit_mb = soft_limit_mb if soft_limit_mb is not None else self.cfg.SOFT_LIMIT_MB
        self.collect_fn = collect_fn
        self._mu = threading.Lock()
        self._pinned: Dict[Handle, Any] = {}
        self._passes = 0
        self._soft_released = 0

    # -------- tracking --------

    def track(self, handle: Handle, value: Any) -> Handle:
        if handle.tier is Tier.SOFT:
            with self._mu:
                self._pinned[handle] = value
        return handle

    def forget(self, handle: Handle) -> bool:
        """Stop tracking a handle the caller dropped. Returns True if a soft pin was released."""
        # the popped value is dropped on return, outside the lock
        with self._mu:
            value = self._pinned.pop(handle, _MISSING)
        return value is not _MISSING

    def create(self, tier: Tier | str, value: Any, queue: Any) -> Handle:
        return self.track(create_handle(tier, value, queue), value)

    def is_pinned(self, handle: Handle) -> bool:
        with self._mu:
            return handle in self._pinned

    @property
    def pinned_count(self) -> int:
        with self._mu:
            return len(self._pinned)

    # -------- reclamation --------

    def collect(self) -> int:
        """Run one reclamation pass."""
        found = int(self.collect_fn() or 0)
        with self._mu:
            self._passes += 1
        dbg("manager", "collect pass found", found, cfg=self.cfg)
        return found

    def release_soft(self) -> int:
        """Drop every soft pin, then collect. Returns how many pins were released."""
        with self._mu:
            released, self._pinned = self._pinned, {}
            self._soft_released += len(released)
        n = len(released)
        # values die outside our lock; their callbacks only push to queues
        released.clear()
        note_soft_release(n, cfg=self.cfg)
        dbg("manager", "released soft pins:", n, cfg=self.cfg)
        self.collect()
        return n

    def relieve_pressure(self, needed_bytes: int, *, reclaimable_bytes: int = 0) -> int:
        """
        Simulated memory pressure. If other reclaimable memory covers the
        request, soft values survive and only a collection pass runs (returns 0).
        Otherwise soft pins are released first.
        """
        if needed_bytes <= 0 or reclaimable_bytes >= needed_bytes:
            self.collect()
            return 0
        return self.release_soft()

    @contextmanager
    def guard(self) -> Iterator[None]:
        """
        Wrap an allocation. On MemoryError, release soft values and raise
        ResourceExhausted. No retry.

        Released values are enqueued before the raise, but their callbacks run
        on each registry worker, so they may still be pending when the caller
        sees ResourceExhausted.
        """
        try:
            yield
        except ResourceExhausted:
            raise
        except MemoryError as err:
            n = self.release_soft()
            raise ResourceExhausted(f"allocation failed after releasing {n} soft value(s)") from err

    def step(self) -> bool:
        """Watchdog hook: release soft pins when RSS is above the soft limit. Returns True if released."""
        if not self.get_rss_mb or self.soft_limit_mb is None:
            return False
        rss = float(self.get_rss_mb())
        if rss <= float(self.soft_limit_mb):
            return False
        dbg("manager", f"rss={rss:.1f}MB above soft limit={float(self.soft_limit_mb):.1f}MB", cfg=self.cfg)
        self.release_soft()
        return True

    def health(self) -> Dict[str, Any]:
        with self._mu:
            return {
                "pinned": len(self._pinned),
                "passes": self._passes,
                "soft_released": self._soft_released,
                "soft_limit_mb": self.soft_limit_mb,
            }


# ---------- process-wide default ----------

_default: Optional[MemoryManager] = None
_default_mu = threading.Lock()


def default_manager() -> MemoryManager:
    global _default
    with _default_mu:
        if _default is None:
            _default = MemoryManager()
        return _default


__all__ = ["MemoryManager", "default_manager", "GetRssMb", "CollectFn"]
