from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .backoff import Backoff
from .strategy import AcquisitionStrategy, BlockingSpin, BoundedSpin


class LockState(str, Enum):
    """
    Lock handle states.

    State transitions:
        UNLOCKED -> LOCKED -> UNLOCKED

    Expiry is not observable; a handle whose key expired stays LOCKED
    until unlock() reports the lost ownership.
    """

    UNLOCKED = "UNLOCKED"
    LOCKED = "LOCKED"


@dataclass(frozen=True)
class LockConfig:
    """
    Settings recognized by a lock handle.

    acquisition_timeout_ms=None selects the blocking strategy; any other
    value selects the bounded strategy with that deadline.
    """

    ttl_seconds: int = 30
    acquisition_timeout_ms: Optional[int] = None
    backoff_base_ms: int = 30
    backoff_jitter_ms: int = 20

    def __post_init__(self):
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {self.ttl_seconds}")

        if self.acquisition_timeout_ms is not None and self.acquisition_timeout_ms < 0:
            raise ValueError(
                f"acquisition_timeout_ms must not be negative, got {self.acquisition_timeout_ms}"
            )

        if self.backoff_base_ms < 0 or self.backoff_jitter_ms < 0:
            raise ValueError("backoff intervals must not be negative")

        if self.backoff_jitter_ms > 0 and self.backoff_jitter_ms >= self.backoff_base_ms:
            raise ValueError(
                "backoff_jitter_ms must be smaller than backoff_base_ms, "
                f"got {self.backoff_jitter_ms} >= {self.backoff_base_ms}"
            )

    def backoff(self) -> Backoff:
        return Backoff(base_ms=self.backoff_base_ms, jitter_ms=self.backoff_jitter_ms)

    def strategy(self) -> AcquisitionStrategy:
        if self.acquisition_timeout_ms is None:
            return BlockingSpin(backoff=self.backoff())
        return BoundedSpin(self.acquisition_timeout_ms, backoff=self.backoff())


@dataclass(frozen=True)
class GuardResult:
    """
    Result returned from LockGuard.run().

    released is None when the lock was never acquired, otherwise whether
    the release deleted the key.
    """

    acquired: bool
    output: Optional[Any]
    released: Optional[bool]
    duration_ms: int
