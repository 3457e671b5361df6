"""
Tests for LockStateStore.
"""

from lockrelay.relay.state import LockStateStore


def test_initially_locked():
    store = LockStateStore()
    assert store.get() is False
    assert store.updated_at is None


def test_set_updates_value_and_timestamp():
    store = LockStateStore()
    store.set(True)
    assert store.get() is True
    first = store.updated_at
    assert first is not None

    store.set(False)
    assert store.get() is False
    assert store.updated_at >= first


def test_set_is_last_write_wins():
    store = LockStateStore()
    for value in (True, False, True, True):
        store.set(value)
    assert store.get() is True
