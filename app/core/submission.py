"""Guard against overlapping submissions of the same form."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class SubmissionGuard:
    """Track in-flight submissions per key within this process.

    A second submission for a key that is still in flight is refused rather
    than queued.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: set[Hashable] = set()

    def is_busy(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[bool]:
        """Yield ``True`` when the key was free and is now held, ``False`` otherwise."""
        with self._lock:
            acquired = key not in self._in_flight
            if acquired:
                self._in_flight.add(key)
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._in_flight.discard(key)


tier_submissions = SubmissionGuard()
