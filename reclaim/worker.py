# reclaim/worker.py
# Single background consumer of a reclamation queue: claims the callback for each reclaimed handle and invokes it exactly once.

from __future__ import annotations

import itertools
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from .config import RECLAIMCFG, ReclaimConfig
from .errors import CallbackFailure, SEVERITY_BY_KEY, failure_from_exception
from .metrics import note_failure, note_fired, note_ignored, note_worker
from .tiers import Handle
from .utils import dbg

Callback = Callable[[], Any]
# Atomically remove the entry for a handle and return its callback (None if already removed)
Claim = Callable[[Handle], Optional[Callback]]
ErrorSink = Callable[[CallbackFailure], None]

# Poison pill: wakes a worker blocked on the queue during stop()
_STOP = object()
_seq = itertools.count(1)


class ReclamationWorker:
    """
    Running: blocked on queue.get(); for each reclaimed handle, claim(handle)
    returns the callback (and deletes the entry) or None if a caller removed it
    first. The callback runs outside any registry lock.

    Stopped: terminal. stop() sets the stop event and pushes a poison pill, so a
    blocked get() wakes immediately; notifications still queued are not drained.

    A raising callback is recorded (failures history, metrics, on_error sink)
    and the loop keeps going. Nothing is retried.
    """

    def __init__(
        self,
        q: Any,
        claim: Claim,
        *,
        name: Optional[str] = None,
        on_error: Optional[ErrorSink] = None,
        config: Optional[ReclaimConfig] = None,
    ) -> None:
        self.cfg = config or RECLAIMCFG
        self.q = q
        self.claim = claim
        self.on_error = on_error
        self.name = name or f"{self.cfg.WORKER_NAME_PREFIX}-{next(_seq)}"
        self.failures: Deque[CallbackFailure] = deque(maxlen=max(1, int(self.cfg.FAILURE_HISTORY)))

        self._stop_evt = threading.Event()
        self._stop_mu = threading.Lock()
        self._stopping = False
        self._thread: Optional[threading.Thread] = None
        self._fired = 0
        self._ignored = 0
        self._failed = 0

    # ----- lifecycle -----

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        note_worker(+1, cfg=self.cfg)
        self._thread.start()
        dbg("worker", self.name, "started", cfg=self.cfg)

    def stop(self, join: bool = True) -> bool:
        """Idempotent. Returns True only for the call that actually stopped the worker."""
        with self._stop_mu:
            if self._stopping:
                return False
            self._stopping = True
        self._stop_evt.set()
        self.q.put(_STOP)
        t = self._thread
        # a callback may destroy its own registry; never join ourselves
        if join and t is not None and t is not threading.current_thread():
            t.join(timeout=self.cfg.WORKER_JOIN_TIMEOUT_S)
        dbg("worker", self.name, "stop requested", cfg=self.cfg)
        return True

    @property
    def running(self) -> bool:
        t = self._thread
        return bool(t and t.is_alive() and not self._stop_evt.is_set())

    @property
    def alive(self) -> bool:
        t = self._thread
        return bool(t and t.is_alive())

    # ----- core loop -----

    def _loop(self) -> None:
        try:
            while not self._stop_evt.is_set():
                item = self.q.get()
                if item is _STOP or self._stop_evt.is_set():
                    break
                self._dispatch(item)
                item = None
        finally:
            note_worker(-1, cfg=self.cfg)
            dbg("worker", self.name, "stopped", cfg=self.cfg)

    def _dispatch(self, handle: Handle) -> None:
        tier = getattr(handle, "tier", "unknown")
        callback = self.claim(handle)
        if callback is None:
            self._ignored += 1
            note_ignored(tier, cfg=self.cfg)
            dbg("worker", "ignored notification for removed entry", handle, cfg=self.cfg)
            return

        self._fired += 1
        note_fired(tier, cfg=self.cfg)
        try:
            callback()
        except Exception as exc:
            self._record_failure(exc, handle)

    def _record_failure(self, exc: Exception, handle: Handle) -> None:
        tier = getattr(handle, "tier", "unknown")
        failure = failure_from_exception(exc, context={"tier": str(getattr(tier, "value", tier)), "handle": repr(handle)})
        self.failures.append(failure)
        self._failed += 1
        note_failure(tier, cfg=self.cfg)
        dbg("worker", "callback failed:", failure.message, cfg=self.cfg)
        if self.on_error is None:
            return
        try:
            self.on_error(failure)
        except Exception as sink_exc:
            self.failures.append(CallbackFailure(
                key="error_sink_failed",
                severity=SEVERITY_BY_KEY["error_sink_failed"],
                message=f"{sink_exc.__class__.__name__}: {sink_exc}",
                context={"failure_key": failure.key},
                exc=sink_exc,
            ))

    # ----- introspection -----

    @property
    def fired(self) -> int:
        return self._fired

    @property
    def ignored(self) -> int:
        return self._ignored

    def health(self) -> Dict[str, Any]:
        last = self.failures[-1] if self.failures else None
        return {
            "name": self.name,
            "running": self.running,
            "fired": self._fired,
            "ignored": self._ignored,
            "callback_failures": self._failed,
            "last_failure": last.key if last else None,
        }


__all__ = ["ReclamationWorker", "Callback", "Claim", "ErrorSink"]
