# reclaim/config.py
# Central configuration for reclaim: worker shutdown, failure history, soft-tier pressure limit, debug and metrics switches.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import os
import time

# ---------- Helpers ----------
def _to_bool(v: Optional[str], default: bool) -> bool:
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on", "y", "t"}

def _to_int(v: Optional[str], default: int) -> int:
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default

def _to_float(v: Optional[str], default: Optional[float]) -> Optional[float]:
    try:
        return float(v) if v not in (None, "") else default
    except ValueError:
        return default

# ---------- Config Dataclass ----------
@dataclass
class ReclaimConfig:
    # Diagnostics
    DEBUG: bool = False                   # print worker/manager traces to stdout
    METRICS_ENABLED: bool = True          # update prometheus metrics

    # Reclamation worker
    WORKER_JOIN_TIMEOUT_S: float = 2.0    # bound on destroy() waiting for the worker thread
    WORKER_NAME_PREFIX: str = "ReclaimWorker"
    FAILURE_HISTORY: int = 64             # callback failures kept per worker

    # Soft tier: release pinned values once RSS goes above this (None = only explicit pressure)
    SOFT_LIMIT_MB: Optional[float] = None

    # Runtime
    START_TS: float = field(default_factory=time.time)

# ---------- Build config with env overrides ----------
def _build_from_env() -> ReclaimConfig:
    cfg = ReclaimConfig()
    cfg.DEBUG = _to_bool(os.getenv("RECLAIM_DEBUG"), cfg.DEBUG)
    cfg.METRICS_ENABLED = _to_bool(os.getenv("RECLAIM_METRICS"), cfg.METRICS_ENABLED)

    cfg.WORKER_JOIN_TIMEOUT_S = _to_float(os.getenv("RECLAIM_WORKER_JOIN_S"), cfg.WORKER_JOIN_TIMEOUT_S)  # type: ignore[assignment]
    cfg.WORKER_NAME_PREFIX = os.getenv("RECLAIM_WORKER_PREFIX", cfg.WORKER_NAME_PREFIX)
    cfg.FAILURE_HISTORY = max(1, _to_int(os.getenv("RECLAIM_FAILURE_HISTORY"), cfg.FAILURE_HISTORY))

    cfg.SOFT_LIMIT_MB = _to_float(os.getenv("RECLAIM_SOFT_LIMIT_MB"), cfg.SOFT_LIMIT_MB)
    return cfg

RECLAIMCFG = _build_from_env()

# ---------- Quick usage notes ----------
# from reclaim.config import RECLAIMCFG
# if RECLAIMCFG.DEBUG: ...
# FinalizableSet.weak(config=replace(RECLAIMCFG, WORKER_JOIN_TIMEOUT_S=0.5))
