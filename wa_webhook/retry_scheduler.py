"""Delayed re-enqueue of failed deliveries."""
import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Tuple

from wa_webhook.queue.models import QueuedEnvelope


class RetryScheduler:
    """Min-heap of envelopes keyed by the time they become due.

    The worker owns one scheduler and drains due entries once per tick, so
    pending retries never outnumber the envelopes that failed and can all be
    cancelled together at shutdown.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[Tuple[float, int, QueuedEnvelope]] = []
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def schedule(self, envelope: QueuedEnvelope, delay: float) -> float:
        """Make ``envelope`` due ``delay`` seconds from now; returns the due time."""
        fire_at = self.clock() + delay
        with self._lock:
            # The counter keeps equal due times in scheduling order
            heapq.heappush(self._heap, (fire_at, next(self._counter), envelope))
        return fire_at

    def pop_due(self, now: Optional[float] = None) -> List[QueuedEnvelope]:
        now = self.clock() if now is None else now
        due = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now:
                due.append(heapq.heappop(self._heap)[2])
        return due

    def cancel_all(self) -> List[QueuedEnvelope]:
        """Drop every pending retry and return the envelopes, soonest first."""
        with self._lock:
            pending = [entry[2] for entry in sorted(self._heap)]
            self._heap.clear()
        return pending

    def next_due(self) -> Optional[float]:
        with self._lock:
            return self._heap[0][0] if self._heap else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)
