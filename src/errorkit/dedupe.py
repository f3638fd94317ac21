from __future__ import annotations

import threading
import weakref
from collections import OrderedDict
from collections.abc import Callable

from errorkit.settings import DEDUPE_MAX_ENTRIES

_Ref = Callable[[], BaseException | None]


def _reference(error: BaseException) -> _Ref:
    try:
        return weakref.ref(error)
    except TypeError:
        # Built-in exception classes have no __weakref__ slot
        return lambda: error


class DedupeTracker:
    """
    Remembers which exception instances have already been reported.

    Membership is by identity, not equality: two ``ValueError("x")`` objects
    are different occurrences. Entries are keyed by ``id()`` and hold a weak
    reference, so a tracked exception (with its traceback and frame locals)
    can still be garbage collected. A dead reference never matches, which
    keeps a recycled ``id()`` from being mistaken for a duplicate. Instances
    of built-in exception classes cannot be weakly referenced and are held
    strongly instead. Once ``max_entries`` is reached the least recently seen
    entry is evicted.

    Safe to share between threads; ``check_and_add`` is atomic.
    """

    def __init__(self, max_entries: int = DEDUPE_MAX_ENTRIES) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._seen: OrderedDict[int, _Ref] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def check_and_add(self, error: BaseException) -> bool:
        """Record ``error`` and return True if it was already tracked."""
        key = id(error)
        with self._lock:
            ref = self._seen.get(key)
            if ref is not None and ref() is error:
                self._seen.move_to_end(key)
                return True
            self._seen[key] = _reference(error)
            self._seen.move_to_end(key)
            if len(self._seen) > self._max_entries:
                self._seen.popitem(last=False)
            return False

    def __contains__(self, error: object) -> bool:
        with self._lock:
            ref = self._seen.get(id(error))
            return ref is not None and ref() is error

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def clear(self) -> int:
        """Forget every tracked instance and return how many were dropped."""
        with self._lock:
            count = len(self._seen)
            self._seen.clear()
            return count
