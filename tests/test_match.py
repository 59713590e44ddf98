import re
from datetime import datetime, timedelta, timezone

from gerberos.match import Match

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def test_string_simple_ipv4():
    match = Match(
        time=ZERO_TIME,
        line="line",
        ip="123.123.123.123",
        ipv6=False,
        regexp=re.compile("regexp"),
    )
    expected = 'time = 0001-01-01T00:00:00Z, IP = "123.123.123.123", IPv4'
    assert match.string_simple() == expected
    assert str(match) == expected


def test_string_extended_ipv4():
    match = Match(
        time=ZERO_TIME,
        line="line",
        ip="123.123.123.123",
        ipv6=False,
        regexp=re.compile("regexp"),
    )
    expected = (
        'time = 0001-01-01T00:00:00Z, IP = "123.123.123.123", IPv4, '
        'line = "line", regexp = "regexp"'
    )
    assert match.string_extended() == expected


def test_string_extended_ipv6():
    match = Match(
        time=ZERO_TIME,
        line="line",
        ip="1:5ee:bad:c0de",
        ipv6=True,
        regexp=re.compile("regexp"),
    )
    expected = (
        'time = 0001-01-01T00:00:00Z, IP = "1:5ee:bad:c0de", IPv6, '
        'line = "line", regexp = "regexp"'
    )
    assert match.string_extended() == expected


def test_plain_string_regexp():
    match = Match(time=ZERO_TIME, line="l", ip="::1", ipv6=True, regexp="regexp")
    assert match.string_extended().endswith('regexp = "regexp"')


def test_non_utc_offset_and_fraction_dropped():
    moment = datetime(2020, 5, 17, 8, 30, 15, 123456, tzinfo=timezone(timedelta(hours=2)))
    match = Match(time=moment, line="l", ip="1.1.1.1", ipv6=False, regexp="r")
    assert match.string_simple() == 'time = 2020-05-17T08:30:15+02:00, IP = "1.1.1.1", IPv4'


def test_default_time_is_current_and_aware():
    before = datetime.now(timezone.utc)
    match = Match(line="l", ip="1.1.1.1", ipv6=False, regexp="r")
    after = datetime.now(timezone.utc)
    assert match.time.tzinfo is not None
    assert before <= match.time <= after