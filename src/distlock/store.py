import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

from .errors import StoreError
from .release import RELEASE_SCRIPT


class LockStore(Protocol):
    """
    Key-value backend boundary for lock keys.

    Guarantees:
    - set_if_absent is atomic: at most one caller creates a missing key
    - compare_and_delete is atomic: no window between compare and delete
    - Keys disappear on their own once their TTL elapses
    """

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        ...

    def compare_and_delete(self, key: str, expected: str) -> bool:
        ...

    def get(self, key: str) -> Optional[str]:
        ...


class RedisStore:
    """
    Redis implementation backed by a redis-py client.

    The client is injected so one connection pool can be shared between
    handles without any module-level state. Every redis-py failure is
    re-raised as StoreError.
    """

    def __init__(self, client: redis.Redis):
        self._client = client
        self._release_script = client.register_script(RELEASE_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStore":
        return cls(redis.Redis.from_url(url, **kwargs))

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """SET key value NX EX ttl_seconds; True iff this call created the key."""
        try:
            return bool(self._client.set(key, value, nx=True, ex=ttl_seconds))
        except redis.RedisError as exc:
            raise StoreError(f"SET NX failed for key {key}: {exc}") from exc

    def compare_and_delete(self, key: str, expected: str) -> bool:
        try:
            result = self._release_script(keys=[key], args=[expected])
        except redis.RedisError as exc:
            raise StoreError(f"Release script failed for key {key}: {exc}") from exc
        return result == 1

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise StoreError(f"GET failed for key {key}: {exc}") from exc

        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value


class InMemoryStore:
    """
    In-memory reference implementation.

    Used for:
    - Tests
    - Local experiments
    - Demonstrating the atomicity rules a real backend must honour

    NOT for production: state is local to one process.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._mutex = threading.Lock()

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        with self._mutex:
            if self._live_value(key) is not None:
                return False
            self._data[key] = (value, self._clock() + ttl_seconds)
            return True

    def compare_and_delete(self, key: str, expected: str) -> bool:
        with self._mutex:
            if self._live_value(key) != expected:
                return False
            del self._data[key]
            return True

    def get(self, key: str) -> Optional[str]:
        with self._mutex:
            return self._live_value(key)

    def force_set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Unconditional write, standing in for another client or an operator."""
        with self._mutex:
            expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
            self._data[key] = (value, expires_at)

    # ---------- helpers ----------

    def _live_value(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value
