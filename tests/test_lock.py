"""
Tests for the lock handle lifecycle.

Validates that:
- lock() then unlock() leaves the key absent
- Every lock() call writes a new token
- A handle never deletes a key it no longer owns
- unlock() on an unlocked handle touches nothing
- Crashed holders are healed by TTL expiry
- Scoped use surfaces a lost lock as LockReleaseError
"""

from unittest.mock import Mock

import pytest

from distlock.errors import LockError, LockReleaseError, StoreError
from distlock.lock import LockHandle
from distlock.models import LockConfig, LockState
from distlock.strategy import BlockingSpin, BoundedSpin


def test_round_trip_leaves_key_absent(store):
    handle = LockHandle(store, "order-42", ttl_seconds=5)

    assert handle.lock() is True
    assert handle.is_locked() is True
    assert handle.state == LockState.LOCKED
    assert store.get("order-42_lock") == handle.token

    assert handle.unlock() is True
    assert handle.is_locked() is False
    assert handle.state == LockState.UNLOCKED
    assert store.get("order-42_lock") is None


def test_key_is_namespaced_with_suffix(store):
    handle = LockHandle(store, "RedisLockKey")
    assert handle.key == "RedisLockKey_lock"


def test_each_lock_call_generates_new_token(store):
    handle = LockHandle(store, "order-42")

    handle.lock()
    first = handle.token
    handle.unlock()

    handle.lock()
    second = handle.token
    handle.unlock()

    assert first != second


def test_unlock_when_not_locked_is_noop():
    """
    Scenario:
    unlock() on a handle that never acquired.

    Expectation:
    - Returns True
    - No store operation is performed
    """

    store = Mock()
    handle = LockHandle(store, "never-locked")

    assert handle.unlock() is True
    assert store.method_calls == []


def test_unlock_after_overwrite_does_not_delete(store):
    """
    Scenario:
    Handle A acquires, then an external actor overwrites the key.

    Expectation:
    - A's unlock() returns False
    - The foreign value is untouched
    - A still transitions to UNLOCKED
    """

    handle = LockHandle(store, "order-42", ttl_seconds=5)
    assert handle.lock() is True

    store.force_set("order-42_lock", "t2")

    assert handle.unlock() is False
    assert store.get("order-42_lock") == "t2"
    assert handle.is_locked() is False


def test_expired_key_is_acquirable_by_another_handle(clocked_store, clock):
    """
    Scenario:
    Handle A acquires with TTL=1s and never releases (crash).

    Expectation:
    - After 1.2s handle B acquires without manual cleanup
    """

    crashed = LockHandle(clocked_store, "order-42", ttl_seconds=1)
    assert crashed.lock() is True

    clock.advance(1.2)

    successor = LockHandle(clocked_store, "order-42", ttl_seconds=1, strategy=BoundedSpin(0))
    assert successor.lock() is True
    assert clocked_store.get("order-42_lock") == successor.token


def test_stale_handle_cannot_release_newer_holder(clocked_store, clock):
    stale = LockHandle(clocked_store, "job", ttl_seconds=1)
    stale.lock()

    clock.advance(2)

    current = LockHandle(clocked_store, "job", ttl_seconds=10)
    current.lock()

    assert stale.unlock() is False
    assert clocked_store.get("job_lock") == current.token
    assert current.is_locked() is True


def test_is_locked_does_not_observe_expiry(clocked_store, clock):
    handle = LockHandle(clocked_store, "job", ttl_seconds=1)
    handle.lock()

    clock.advance(5)

    assert handle.is_locked() is True
    assert handle.owner() is None


def test_lock_twice_on_same_handle_is_rejected(store):
    handle = LockHandle(store, "job")
    handle.lock()

    with pytest.raises(LockError):
        handle.lock()

    assert handle.unlock() is True


def test_store_error_on_acquire_propagates():
    store = Mock()
    store.set_if_absent.side_effect = StoreError("connection refused")
    handle = LockHandle(store, "job")

    with pytest.raises(StoreError):
        handle.lock()

    assert handle.is_locked() is False


def test_store_error_on_release_keeps_handle_locked():
    store = Mock()
    store.set_if_absent.return_value = True
    store.compare_and_delete.side_effect = StoreError("timeout")
    handle = LockHandle(store, "job")
    handle.lock()

    with pytest.raises(StoreError):
        handle.unlock()

    assert handle.is_locked() is True

    # Retry once the store is back
    store.compare_and_delete.side_effect = None
    store.compare_and_delete.return_value = True
    assert handle.unlock() is True
    store.compare_and_delete.assert_called_with("job_lock", handle.token)


def test_context_manager_releases_on_exit(store):
    with LockHandle(store, "job") as handle:
        assert handle.is_locked() is True
        assert store.get("job_lock") == handle.token

    assert handle.is_locked() is False
    assert store.get("job_lock") is None


def test_context_manager_releases_when_block_raises(store):
    with pytest.raises(ValueError):
        with LockHandle(store, "job"):
            raise ValueError("boom")

    assert store.get("job_lock") is None


def test_context_manager_raises_when_lock_was_lost(store):
    with pytest.raises(LockReleaseError) as exc_info:
        with LockHandle(store, "job"):
            store.force_set("job_lock", "intruder")

    assert exc_info.value.key == "job_lock"
    assert store.get("job_lock") == "intruder"


def test_release_failure_keeps_block_error_as_context(store):
    with pytest.raises(LockReleaseError) as exc_info:
        with LockHandle(store, "job"):
            store.force_set("job_lock", "intruder")
            raise ValueError("critical section failed")

    assert isinstance(exc_info.value.__context__, ValueError)


def test_context_manager_with_bounded_timeout_skips_release(store):
    store.force_set("job_lock", "other-client")

    with LockHandle(store, "job", strategy=BoundedSpin(0)) as handle:
        assert handle.is_locked() is False

    assert store.get("job_lock") == "other-client"


def test_from_config_uses_config_values(store):
    config = LockConfig(ttl_seconds=7, acquisition_timeout_ms=0)
    handle = LockHandle.from_config(store, "job", config)

    assert handle.ttl_seconds == 7
    assert handle.lock() is True
    assert handle.unlock() is True


def test_default_strategy_is_blocking(store):
    handle = LockHandle(store, "job")
    assert isinstance(handle._strategy, BlockingSpin)


@pytest.mark.parametrize("name,ttl", [("", 30), ("job", 0), ("job", -1)])
def test_invalid_arguments_rejected(store, name, ttl):
    with pytest.raises(ValueError):
        LockHandle(store, name, ttl_seconds=ttl)
