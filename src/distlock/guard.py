import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .errors import LockReleaseError, StoreError
from .lock import LockHandle
from .models import GuardResult, LockConfig
from .store import LockStore

logger = logging.getLogger(__name__)


class LockGuard:
    """
    Run callables inside a distributed critical section.

    Guarantees:
    - fn runs only while this process holds the lock
    - The lock is released on every exit path
    - A lost lock after a clean run is raised as LockReleaseError

    Does NOT:
    - Retry fn
    - Renew the lease while fn runs
    - Roll back side effects of fn when the lease was lost
    """

    def __init__(
        self,
        store: LockStore,
        config: Optional[LockConfig] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self._store = store
        self._config = config or LockConfig()
        self._cancel = cancel

    def run(self, name: str, fn: Callable[[], Any]) -> GuardResult:
        """
        Run fn while holding the lock called name.

        Algorithm:
        1. Acquire with the configured strategy
        2. Skip fn if the lock could not be acquired
        3. Execute fn
        4. Release, whatever fn did
        """

        start_time = datetime.now(timezone.utc)
        handle = LockHandle.from_config(self._store, name, self._config, self._cancel)

        # 1-2. Acquire (blocking or bounded, per config) or skip
        if not handle.lock():
            logger.info("Skipping %s: lock not acquired", name)
            return GuardResult(
                acquired=False,
                output=None,
                released=None,
                duration_ms=self._duration_ms(start_time),
            )

        # 3. Critical section
        fn_failed = True
        try:
            output = fn()
            fn_failed = False
        finally:
            # 4. Release on every exit path; fn's own error wins
            if fn_failed:
                self._release_after_failure(handle, name)
            elif not handle.unlock():
                raise LockReleaseError(handle.key)

        return GuardResult(
            acquired=True,
            output=output,
            released=True,
            duration_ms=self._duration_ms(start_time),
        )

    # ---------- helpers ----------

    @staticmethod
    def _release_after_failure(handle: LockHandle, name: str) -> None:
        try:
            released = handle.unlock()
        except StoreError:
            logger.warning("Could not release %s after %s failed", handle.key, name, exc_info=True)
            return

        if not released:
            logger.error("Lock for %s was lost before %s failed", handle.key, name)

    @staticmethod
    def _duration_ms(start_time: datetime) -> int:
        return int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)
