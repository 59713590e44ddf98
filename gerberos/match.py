"""A log line that was recognised by a rule."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from re import Pattern


def _now() -> datetime:
    return datetime.now().astimezone()


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if moment.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


@dataclass(frozen=True)
class Match:
    """The IP found in a line, with the line and the pattern that found it."""

    line: str
    ip: str
    ipv6: bool
    regexp: Pattern[str] | str
    time: datetime = field(default_factory=_now)

    def string_simple(self) -> str:
        """Time, IP and IP version."""
        version = "IPv6" if self.ipv6 else "IPv4"
        return f'time = {_rfc3339(self.time)}, IP = "{self.ip}", {version}'

    def string_extended(self) -> str:
        """The simple form followed by the line and the pattern."""
        pattern = getattr(self.regexp, "pattern", self.regexp)
        return f'{self}, line = "{self.line}", regexp = "{pattern}"'

    def __str__(self) -> str:
        return self.string_simple()