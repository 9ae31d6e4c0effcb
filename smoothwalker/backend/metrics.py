"""
backend/metrics.py

Lightweight thread-safe counters for the statistics pipeline.
No external dependencies — uses Python's threading.Lock.

Usage:
    from backend.metrics import METRICS
    METRICS.query_errors.inc()
    print(METRICS.as_dict())
"""

import threading


class Counter:
    """A thread-safe integer counter."""

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:  # pragma: no cover
        return f"Counter({self._value})"


class Metrics:
    """Singleton holding all pipeline counters."""

    def __init__(self) -> None:
        self.authorization_denied: Counter = Counter()
        """Authorization requests refused (or failed) by the sample store."""

        self.queries_started: Counter = Counter()
        """Statistics queries handed to the sample store."""

        self.query_errors: Counter = Counter()
        """Initial or incremental results that arrived with an error."""

        self.buckets_malformed: Counter = Counter()
        """Buckets whose aggregate could not be converted and were recorded as 0.0."""

        self.updates_dropped: Counter = Counter()
        """Slot updates discarded because the update channel was full or its loop had closed."""

        self.updates_cancelled: Counter = Counter()
        """Slot updates suppressed because their query had been cancelled."""

    def as_dict(self) -> dict:
        """Return all counters as a plain dict (safe for JSON serialisation)."""
        return {
            "authorization_denied": self.authorization_denied.value,
            "queries_started": self.queries_started.value,
            "query_errors": self.query_errors.value,
            "buckets_malformed": self.buckets_malformed.value,
            "updates_dropped": self.updates_dropped.value,
            "updates_cancelled": self.updates_cancelled.value,
        }

    def reset_all(self) -> None:
        """Reset every counter to zero (useful in tests)."""
        for attr in vars(self).values():
            if isinstance(attr, Counter):
                attr.reset()


# Module-level singleton — import from here everywhere
METRICS = Metrics()
