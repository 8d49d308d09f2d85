import logging
import threading
import time
from typing import Callable, Optional, Protocol

from .backoff import Backoff
from .errors import AcquisitionCancelled

logger = logging.getLogger(__name__)


TrySet = Callable[[], bool]


class AcquisitionStrategy(Protocol):
    """
    Policy for how lock() behaves while the key is held by someone else.

    Implementations must guarantee:
    - Contention is never an exception
    - A set cancel event aborts the attempt with AcquisitionCancelled,
      including while waiting between retries
    - Store errors raised by try_set propagate unchanged
    """

    def acquire(self, try_set: TrySet, cancel: Optional[threading.Event] = None) -> bool:
        """
        Drive try_set until it succeeds or the policy gives up.

        Returns:
            True once try_set created the key
            False if the policy gave up (bounded strategies only)
        """
        ...


class BlockingSpin:
    """
    Retry forever with jittered backoff.

    Never returns False. A caller waiting on a stuck key relies on the
    holder releasing it or its TTL running out.
    """

    def __init__(self, backoff: Optional[Backoff] = None):
        self._backoff = backoff or Backoff()

    def acquire(self, try_set: TrySet, cancel: Optional[threading.Event] = None) -> bool:
        cancel = cancel or threading.Event()
        attempts = 0

        while True:
            _check_cancelled(cancel)
            attempts += 1

            if try_set():
                logger.debug("Lock acquired after %d attempt(s)", attempts)
                return True

            if cancel.wait(self._backoff.next_delay()):
                raise AcquisitionCancelled()


class BoundedSpin:
    """
    Retry with jittered backoff until timeout_ms has elapsed.

    At least one attempt is always made, so timeout_ms=0 is a single
    non-blocking try.
    """

    def __init__(
        self,
        timeout_ms: int,
        backoff: Optional[Backoff] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if timeout_ms < 0:
            raise ValueError(f"timeout_ms must not be negative, got {timeout_ms}")

        self.timeout_ms = timeout_ms
        self._backoff = backoff or Backoff()
        self._clock = clock

    def acquire(self, try_set: TrySet, cancel: Optional[threading.Event] = None) -> bool:
        cancel = cancel or threading.Event()
        deadline = self._clock() + self.timeout_ms / 1000.0
        attempts = 0

        while True:
            _check_cancelled(cancel)
            attempts += 1

            if try_set():
                logger.debug("Lock acquired after %d attempt(s)", attempts)
                return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.debug(
                    "Lock not acquired within %d ms (%d attempt(s))",
                    self.timeout_ms,
                    attempts,
                )
                return False

            if cancel.wait(min(self._backoff.next_delay(), remaining)):
                raise AcquisitionCancelled()


# ---------- helpers ----------

def _check_cancelled(cancel: threading.Event) -> None:
    if cancel.is_set():
        raise AcquisitionCancelled()
