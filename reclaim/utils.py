# reclaim/utils.py
# Small shared helpers: env-gated debug tracing.

from __future__ import annotations

from typing import Optional

from .config import RECLAIMCFG, ReclaimConfig


def dbg(tag: str, *a, cfg: Optional[ReclaimConfig] = None) -> None:
    """Print a tagged trace line when RECLAIM_DEBUG is on."""
    if not (cfg or RECLAIMCFG).DEBUG:
        return
    print(f"[reclaim.{tag}]", *a, flush=True)


__all__ = ["dbg"]
