# reclaim/errors.py
# Exception taxonomy for the registries plus CallbackFailure records for errors raised inside callbacks on the worker.

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional
import time


class ReclaimError(Exception):
    """Base class for every error raised by reclaim."""


class InvalidValue(ReclaimError, TypeError):
    """The value is None or cannot be tracked by a weak reference."""


class NoSuchElement(ReclaimError, LookupError):
    """Index out of range, cursor advanced past its end, or nothing registered."""


class IllegalIteratorState(ReclaimError, RuntimeError):
    """Cursor remove() without a preceding next()."""


class ResourceExhausted(ReclaimError, MemoryError):
    """An allocation failed even after soft-tier values were released."""


class Severity(IntEnum):
    """1 = worst, 3 = least severe."""
    SEV1 = 1
    SEV2 = 2
    SEV3 = 3


# Error keys emitted by the worker → default severity
SEVERITY_BY_KEY: Dict[str, int] = {
    "callback_failed": 2,
    "callback_memory_error": 1,
    "error_sink_failed": 3,
}


@dataclass
class CallbackFailure:
    """
    A single callback failure captured on the reclamation worker.

      - key: "callback_failed" / "callback_memory_error"
      - severity: 1 (worst) .. 3
      - message: "<ExcType>: <text>"
      - context: tier, handle repr
      - exc: the exception itself (not retried, not re-raised)
    """
    key: str
    severity: int
    message: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    exc: Optional[BaseException] = None
    ts: float = field(default_factory=time.monotonic)


def failure_from_exception(exc: BaseException, *, context: Optional[Dict[str, Any]] = None) -> CallbackFailure:
    key = "callback_memory_error" if isinstance(exc, MemoryError) else "callback_failed"
    return CallbackFailure(
        key=key,
        severity=SEVERITY_BY_KEY.get(key, 1),
        message=f"{exc.__class__.__name__}: {exc}",
        context=dict(context or {}),
        exc=exc,
    )


__all__ = [
    "ReclaimError",
    "InvalidValue",
    "NoSuchElement",
    "IllegalIteratorState",
    "ResourceExhausted",
    "Severity",
    "SEVERITY_BY_KEY",
    "CallbackFailure",
    "failure_from_exception",
]
