"""
Single-coordinator distributed locks over Redis.

Import lock handles, strategies, stores and errors from here;
the submodule layout may change between releases.
"""

from .backoff import Backoff
from .errors import AcquisitionCancelled, LockError, LockReleaseError, StoreError
from .guard import LockGuard
from .lock import KEY_SUFFIX, LockHandle
from .models import GuardResult, LockConfig, LockState
from .release import RELEASE_SCRIPT, RELEASE_SCRIPT_VERSION
from .store import InMemoryStore, LockStore, RedisStore
from .strategy import AcquisitionStrategy, BlockingSpin, BoundedSpin

__all__ = [
    "LockHandle",
    "LockGuard",
    "LockConfig",
    "LockState",
    "GuardResult",
    "LockStore",
    "RedisStore",
    "InMemoryStore",
    "AcquisitionStrategy",
    "BlockingSpin",
    "BoundedSpin",
    "Backoff",
    "LockError",
    "StoreError",
    "LockReleaseError",
    "AcquisitionCancelled",
    "KEY_SUFFIX",
    "RELEASE_SCRIPT",
    "RELEASE_SCRIPT_VERSION",
]

__version__ = "0.1.0"
