"""Tests for errorkit.dedupe."""

import gc
import threading
import weakref

import pytest

from errorkit.dedupe import DedupeTracker


class JobFailed(Exception):
    pass


class TestDedupeTracker:
    def test_first_sighting_is_new(self) -> None:
        tracker = DedupeTracker()
        error = ValueError("x")

        assert tracker.check_and_add(error) is False
        assert tracker.check_and_add(error) is True
        assert error in tracker

    def test_identity_not_equality(self) -> None:
        tracker = DedupeTracker()
        tracker.check_and_add(ValueError("x"))
        assert ValueError("x") not in tracker
        assert tracker.check_and_add(ValueError("x")) is False

    def test_lru_eviction(self) -> None:
        tracker = DedupeTracker(max_entries=2)
        a, b, c = ValueError("a"), ValueError("b"), ValueError("c")
        tracker.check_and_add(a)
        tracker.check_and_add(b)
        tracker.check_and_add(a)  # a becomes most recent
        tracker.check_and_add(c)  # evicts b

        assert len(tracker) == 2
        assert a in tracker
        assert c in tracker
        assert b not in tracker

    def test_clear(self) -> None:
        tracker = DedupeTracker()
        tracker.check_and_add(ValueError())
        tracker.check_and_add(KeyError())
        assert tracker.clear() == 2
        assert len(tracker) == 0

    def test_invalid_bound(self) -> None:
        with pytest.raises(ValueError):
            DedupeTracker(max_entries=0)

    def test_concurrent_check_and_add(self) -> None:
        tracker = DedupeTracker()
        error = RuntimeError("shared")
        results: list[bool] = []
        lock = threading.Lock()
        barrier = threading.Barrier(16)

        def worker() -> None:
            barrier.wait()
            seen = tracker.check_and_add(error)
            with lock:
                results.append(seen)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(False) == 1
        assert results.count(True) == 15


class TestReferences:
    def test_tracked_error_can_be_collected(self) -> None:
        tracker = DedupeTracker()
        error = JobFailed("payload")
        tracker.check_and_add(error)
        ref = weakref.ref(error)

        del error
        gc.collect()

        assert ref() is None
        assert len(tracker) == 1  # the slot stays until evicted or cleared

    def test_collected_entry_never_matches(self) -> None:
        tracker = DedupeTracker()
        first = JobFailed("first")
        tracker.check_and_add(first)
        del first
        gc.collect()

        # A new object may reuse the id; it must count as a first sighting
        second = JobFailed("second")
        assert tracker.check_and_add(second) is False
        assert tracker.check_and_add(second) is True

    def test_user_and_builtin_errors_are_both_tracked(self) -> None:
        tracker = DedupeTracker()
        custom, builtin = JobFailed("custom"), KeyError("builtin")
        tracker.check_and_add(custom)
        tracker.check_and_add(builtin)

        assert custom in tracker
        assert builtin in tracker
        assert tracker.check_and_add(builtin) is True
