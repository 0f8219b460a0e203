"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import time


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Input errors
    EMPTY_NAME = auto()
    UNKNOWN_TYPE = auto()
    INVALID_LEVEL = auto()
    NODE_NOT_FOUND = auto()

    # Structural errors
    SYSTEM_ALREADY_EXISTS = auto()
    MISSING_PARENT = auto()
    WRONG_PARENT_TYPE = auto()
    WRONG_PARENT_LEVEL = auto()
    NO_ELIGIBLE_PARENT = auto()
    AMBIGUOUS_PARENT = auto()
    CYCLIC_PARENT = auto()
    WOULD_ORPHAN_CHILDREN = auto()

    # Duplicate resolution errors
    COLLISION_UNRESOLVED = auto()

    # Interchange / storage errors
    MALFORMED_PAYLOAD = auto()
    STORAGE_WRITE_FAILED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        """Build an error stamped with the current UTC time."""
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((key, str(value)) for key, value in context.items())
        )

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object = None) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# TEMPORAL HELPERS (epoch milliseconds, UTC)
# =============================================================================

def now_millis() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MIN_MILLIS = -62135596800000  # 0001-01-01T00:00:00.000Z
MAX_MILLIS = 253402300799999  # 9999-12-31T23:59:59.999Z


def millis_to_iso(millis: int) -> str:
    """
    Render epoch milliseconds as UTC ISO-8601 with a 'Z' suffix.

    Values outside the datetime range clamp to year 1 or year 9999.
    """
    try:
        dt = _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        dt = (datetime.max if millis > 0 else datetime.min).replace(tzinfo=timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
