# reclaim/metrics.py
# Prometheus metrics for reclaim (private CollectorRegistry): handle/callback counters, tracked gauges, soft releases, and helpers.

from __future__ import annotations
from typing import Iterable, Optional
import threading

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    start_http_server,
)

from .config import RECLAIMCFG, ReclaimConfig

# ---------- Public Registry ----------
REGISTRY = CollectorRegistry()
_server_guard = threading.Lock()
_server_started = False

# ---------- Metric factories ----------
def _counter(name: str, desc: str, labels: Iterable[str] = ()) -> Counter:
    return Counter(name, desc, list(labels), registry=REGISTRY)

def _gauge(name: str, desc: str, labels: Iterable[str] = ()) -> Gauge:
    return Gauge(name, desc, list(labels), registry=REGISTRY)

# ---------- Metrics (namespaced "reclaim_") ----------
handles_created_total        = _counter("reclaim_handles_created_total", "Handles created by registries.", labels=["tier"])
callbacks_fired_total        = _counter("reclaim_callbacks_fired_total", "Callbacks invoked by reclamation workers.", labels=["tier"])
callback_failures_total      = _counter("reclaim_callback_failures_total", "Callbacks that raised on the worker.", labels=["tier"])
notifications_ignored_total  = _counter("reclaim_notifications_ignored_total", "Reclamation notifications for entries already removed.", labels=["tier"])
explicit_removals_total      = _counter("reclaim_explicit_removals_total", "Entries removed by callers without firing.", labels=["tier"])
soft_releases_total          = _counter("reclaim_soft_releases_total", "Soft-tier pins released by the memory manager.")

tracked_handles              = _gauge("reclaim_tracked_handles", "Live registry entries.", labels=["tier"])
workers_running              = _gauge("reclaim_workers_running", "Reclamation worker threads currently running.")


def _tier(tier) -> str:
    return str(getattr(tier, "value", tier))

def _on(cfg: Optional[ReclaimConfig]) -> bool:
    return (cfg or RECLAIMCFG).METRICS_ENABLED

# ---------- Helpers ----------
def note_created(tier, n: int = 1, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if not _on(cfg):
        return
    handles_created_total.labels(_tier(tier)).inc(n)
    tracked_handles.labels(_tier(tier)).inc(n)

def note_fired(tier, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if not _on(cfg):
        return
    callbacks_fired_total.labels(_tier(tier)).inc()
    tracked_handles.labels(_tier(tier)).dec()

def note_failure(tier, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if _on(cfg):
        callback_failures_total.labels(_tier(tier)).inc()

def note_ignored(tier, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if _on(cfg):
        notifications_ignored_total.labels(_tier(tier)).inc()

def note_removed(tier, n: int = 1, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if not _on(cfg) or n <= 0:
        return
    explicit_removals_total.labels(_tier(tier)).inc(n)
    tracked_handles.labels(_tier(tier)).dec(n)

def note_soft_release(n: int, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if _on(cfg) and n > 0:
        soft_releases_total.inc(n)

def note_worker(delta: int, *, cfg: Optional[ReclaimConfig] = None) -> None:
    if _on(cfg):
        workers_running.inc(delta)

def sample(name: str, **labels: str) -> float:
    """Current value of a sample (0.0 if never touched)."""
    v = REGISTRY.get_sample_value(name, labels or None)
    return float(v or 0.0)

def start_metrics_server(port: int = 8009) -> bool:
    """Start Prometheus HTTP server on given port (idempotent). Returns True once running."""
    global _server_started
    with _server_guard:
        if _server_started:
            return True
        start_http_server(port, registry=REGISTRY)
        _server_started = True
        return True

def dump_text() -> Optional[bytes]:
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "note_created",
    "note_fired",
    "note_failure",
    "note_ignored",
    "note_removed",
    "note_soft_release",
    "note_worker",
    "sample",
    "start_metrics_server",
    "dump_text",
]
