"""Result type for best-effort store operations.

Cache, leaderboard and queue calls never raise into the request path. They
return a ``StoreResult`` the caller may inspect or ignore:

- ``OK``: the store answered; ``value`` holds the answer (which may be empty).
- ``UNAVAILABLE``: the store is not configured or unreachable. Readers must go
  to the system of record instead of treating this as "no data".
- ``ERROR``: the store answered with an error (bad key type, script error, ...).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class StoreStatus(str, Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a single store operation."""

    status: StoreStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(StoreStatus.OK, value=value)

    @classmethod
    def unavailable(cls, error: Optional[str] = None) -> "StoreResult[T]":
        return cls(StoreStatus.UNAVAILABLE, error=error)

    @classmethod
    def failed(cls, error: str) -> "StoreResult[T]":
        return cls(StoreStatus.ERROR, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is StoreStatus.OK

    @property
    def should_fallback(self) -> bool:
        """True when the caller should ask the source of truth instead."""
        return self.status is not StoreStatus.OK

    def unwrap_or(self, default: T) -> T:
        if self.status is StoreStatus.OK and self.value is not None:
            return self.value
        return default
