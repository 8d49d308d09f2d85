from typing import Optional


class LockError(Exception):
    """Base class for all distlock errors."""


class StoreError(LockError):
    """
    The backing store could not be reached or rejected a command.

    The effect of the failed call is unknown (the write may or may not
    have landed), so the lock layer never retries it. Callers decide.
    """


class LockReleaseError(LockError):
    """
    A scoped release reported failure for a handle that believed it was locked.

    The key had already expired or been taken over by another client, so
    the critical section may have run without exclusive access.
    """

    def __init__(self, key: str):
        super().__init__(f"Failed to release distributed lock, key={key}")
        self.key = key


class AcquisitionCancelled(LockError):
    """Lock acquisition was abandoned because the cancel event was set."""

    def __init__(self, key: Optional[str] = None):
        message = "Lock acquisition cancelled"
        if key is not None:
            message = f"{message}, key={key}"
        super().__init__(message)
        self.key = key
