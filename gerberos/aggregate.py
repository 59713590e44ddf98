"""Registry linking line identifiers to the IP seen with them."""

from __future__ import annotations

import threading
from datetime import timedelta
from ipaddress import IPv4Address, IPv6Address
from re import Pattern
from typing import Iterable


class Aggregate:
    """Thread-safe mapping of identifiers to IP addresses."""

    def __init__(self, interval: timedelta | float, regexps: Iterable[Pattern[str]]) -> None:
        if not isinstance(interval, timedelta):
            interval = timedelta(seconds=interval)
        self.interval = interval
        self.regexps = list(regexps)
        self._registry: dict[str, IPv4Address | IPv6Address] = {}
        self._lock = threading.Lock()

    def register(self, identifier: str, ip: IPv4Address | IPv6Address) -> None:
        with self._lock:
            self._registry[identifier] = ip

    def pop(self, identifier: str) -> IPv4Address | IPv6Address | None:
        with self._lock:
            return self._registry.pop(identifier, None)

    def expire(self, identifier: str) -> IPv4Address | IPv6Address | None:
        """Drop an entry whose interval has elapsed and return it."""
        return self.pop(identifier)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._registry

    def __len__(self) -> int:
        with self._lock:
            return len(self._registry)