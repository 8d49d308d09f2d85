import logging
import threading
import uuid
from typing import Optional

from .errors import AcquisitionCancelled, LockError, LockReleaseError
from .models import LockConfig, LockState
from .release import release
from .store import LockStore
from .strategy import AcquisitionStrategy, BlockingSpin

logger = logging.getLogger(__name__)

KEY_SUFFIX = "_lock"


class LockHandle:
    """
    One acquisition path's view of a distributed lock.

    A handle is owned by a single thread of control and must not be shared.
    Every lock() call writes a fresh token, so a stale handle can never
    delete a key that a newer acquisition now holds.

    Usage:
        with LockHandle(store, "order-42", ttl_seconds=5) as handle:
            if handle.is_locked():
                ...

    Leaving the with block releases the key and raises LockReleaseError
    if the key had already expired or changed hands.
    """

    def __init__(
        self,
        store: LockStore,
        name: str,
        ttl_seconds: int = 30,
        strategy: Optional[AcquisitionStrategy] = None,
        cancel: Optional[threading.Event] = None,
    ):
        if not name:
            raise ValueError("lock name must not be empty")

        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        self._store = store
        self._strategy = strategy or BlockingSpin()
        self._cancel = cancel
        self.key = f"{name}{KEY_SUFFIX}"
        self.ttl_seconds = ttl_seconds
        self.token: Optional[str] = None
        self._locked = False

    @classmethod
    def from_config(
        cls,
        store: LockStore,
        name: str,
        config: LockConfig,
        cancel: Optional[threading.Event] = None,
    ) -> "LockHandle":
        return cls(
            store,
            name,
            ttl_seconds=config.ttl_seconds,
            strategy=config.strategy(),
            cancel=cancel,
        )

    @property
    def state(self) -> LockState:
        return LockState.LOCKED if self._locked else LockState.UNLOCKED

    def is_locked(self) -> bool:
        """
        Cached lock flag.

        The store is not queried, so this stays True after the key's TTL
        ran out until unlock() observes the loss.
        """
        return self._locked

    def lock(self) -> bool:
        """
        Acquire the key using the configured strategy.

        Returns:
            True once the key is held by this handle
            False if a bounded strategy ran out of time

        Raises:
            AcquisitionCancelled if the cancel event was set while waiting
            StoreError if the store could not be reached
        """
        if self._locked:
            raise LockError(f"Lock {self.key} is already held by this handle")

        token = str(uuid.uuid4())
        self.token = token

        def try_set() -> bool:
            return self._store.set_if_absent(self.key, token, self.ttl_seconds)

        try:
            acquired = self._strategy.acquire(try_set, self._cancel)
        except AcquisitionCancelled:
            logger.info("Acquisition of %s cancelled", self.key)
            raise AcquisitionCancelled(self.key) from None

        if acquired:
            self._locked = True
            logger.debug("Acquired %s (ttl=%ss)", self.key, self.ttl_seconds)
        return acquired

    def unlock(self) -> bool:
        """
        Release the key if this handle still owns it.

        Returns:
            True if the key was deleted, or if the handle was not locked
            False if the key had expired or been taken over; writes made
            under the lock may not have been exclusive

        A StoreError leaves the handle locked so the release can be retried.
        """
        if not self._locked:
            return True

        released = release(self._store, self.key, self.token)
        self._locked = False

        if released:
            logger.debug("Released %s", self.key)
        else:
            logger.warning(
                "Lock %s was no longer owned at release (expired or taken over)",
                self.key,
            )
        return released

    def owner(self) -> Optional[str]:
        """Token currently stored under the key. Diagnostic only."""
        return self._store.get(self.key)

    def __enter__(self) -> "LockHandle":
        self.lock()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._locked and not self.unlock():
            raise LockReleaseError(self.key)

    def __repr__(self) -> str:
        return f"LockHandle(key={self.key!r}, state={self.state.value})"
