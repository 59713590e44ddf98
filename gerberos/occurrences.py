"""Counting of repeated hits per host within a time window."""

from __future__ import annotations

from collections import deque
from datetime import timedelta
from time import monotonic


class Occurrences:
    """Reports a host once it was seen ``count`` times within ``interval``."""

    def __init__(self, interval: timedelta | float, count: int) -> None:
        if not isinstance(interval, timedelta):
            interval = timedelta(seconds=interval)
        self.interval = interval
        self.count = count
        self._registry: dict[str, deque[float]] = {}

    def add(self, host: str) -> bool:
        """Record a hit for ``host`` and tell whether the threshold was reached."""
        now = monotonic()
        hits = self._registry.get(host)
        if hits is None:
            self._registry[host] = deque([now], maxlen=self.count)
            return False

        hits.append(now)
        if len(hits) == self.count:
            if hits[-1] - hits[0] <= self.interval.total_seconds():
                del self._registry[host]
                return True
        return False