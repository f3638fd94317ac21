"""Report throttling: random sampling and fixed-window rate limits.

A throttle policy is a callable ``(error) -> Limit | Sample | None``
registered with ``ErrorRegistry.throttle``. ``None`` means "do not throttle".

    registry.throttle(lambda e: Sample(0.1) if isinstance(e, CacheMiss) else None)
    registry.throttle(lambda e: Limit.per_minute(300))
"""

from __future__ import annotations

import random
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from errorkit.settings import THROTTLE_MAX_KEYS


@dataclass(frozen=True, slots=True)
class Sample:
    """Let through roughly ``rate`` of the reports (0.0 drops all, 1.0 keeps all)."""

    rate: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.rate <= 1.0:
            raise ValueError("Sample rate must be between 0 and 1")


@dataclass(frozen=True, slots=True)
class Limit:
    """Allow at most ``max_attempts`` reports per ``per_seconds`` window.

    Attributes:
        max_attempts: Reports allowed in one window.
        per_seconds: Window length in seconds.
        key: Bucket key. Defaults to the error's qualified class name.
    """

    max_attempts: int
    per_seconds: float = 60.0
    key: str | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        if self.per_seconds <= 0:
            raise ValueError("per_seconds must be positive")

    @classmethod
    def per_second(cls, max_attempts: int) -> Limit:
        return cls(max_attempts, 1.0)

    @classmethod
    def per_minute(cls, max_attempts: int) -> Limit:
        return cls(max_attempts, 60.0)

    @classmethod
    def per_hour(cls, max_attempts: int) -> Limit:
        return cls(max_attempts, 3600.0)

    @classmethod
    def none(cls) -> Limit:
        """A limit that never throttles."""
        return cls(2**63 - 1, 1.0)

    def by(self, key: str) -> Limit:
        return Limit(self.max_attempts, self.per_seconds, key)


ThrottlePolicy = Callable[[BaseException], Limit | Sample | None]


def kind_name(error: BaseException) -> str:
    cls = type(error)
    return f"{cls.__module__}.{cls.__qualname__}"


class Throttler:
    """Applies ``Limit`` and ``Sample`` decisions.

    Window counters are shared across threads and guarded by a lock. They are
    kept in least-recently-used order: expired windows at the old end are
    dropped as new keys arrive, and at most ``max_keys`` windows are held, so
    per-user or per-message keys cannot grow the table without bound.
    ``clock`` and ``rng`` are injectable for tests.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
        max_keys: int = THROTTLE_MAX_KEYS,
    ) -> None:
        if max_keys <= 0:
            raise ValueError("max_keys must be positive")
        self._clock = clock
        self._rng = rng
        self._max_keys = max_keys
        # key -> (window start, count, window length)
        self._windows: OrderedDict[str, tuple[float, int, float]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def allow(self, error: BaseException, decision: Limit | Sample | None) -> bool:
        if decision is None:
            return True
        if isinstance(decision, Sample):
            return self._rng() < decision.rate
        return self._hit(decision.key or kind_name(error), decision)

    def _hit(self, key: str, limit: Limit) -> bool:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                self._prune(now)
                start, count = now, 0
            else:
                start, count, _ = window
                self._windows.move_to_end(key)
                if now - start >= limit.per_seconds:
                    start, count = now, 0
            allowed = count < limit.max_attempts
            self._windows[key] = (start, count + 1 if allowed else count, limit.per_seconds)
            return allowed

    def _prune(self, now: float) -> None:
        # Caller holds the lock and is about to add one key
        while self._windows:
            start, _, per_seconds = next(iter(self._windows.values()))
            if now - start < per_seconds and len(self._windows) < self._max_keys:
                break
            self._windows.popitem(last=False)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
