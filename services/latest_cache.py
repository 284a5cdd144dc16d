"""Single-slot holder for the most recently accepted measurement."""

from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Optional

from models.records import CanonicalMeasurement


class LatestReadingCache:
    """Last-write-wins slot shared by all request handlers.

    Measurements are immutable, so a reader either sees the previous value or
    the new one in full. When writers race, the slot ends up holding whichever
    ``set`` ran last, which need not be the request that arrived last.
    """

    def __init__(self) -> None:
        self._latest: Optional[CanonicalMeasurement] = None
        self._lock = Lock()

    def set(self, measurement: CanonicalMeasurement) -> None:
        with self._lock:
            self._latest = measurement

    def get(self) -> Optional[CanonicalMeasurement]:
        with self._lock:
            return self._latest

    def clear(self) -> None:
        with self._lock:
            self._latest = None


@lru_cache
def build_default_cache() -> LatestReadingCache:
    return LatestReadingCache()
