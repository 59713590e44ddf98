import time
from datetime import timedelta
from unittest.mock import patch

from gerberos.occurrences import Occurrences

HOST = "123.123.123.123"


def new_test_occurrences():
    return Occurrences(timedelta(milliseconds=100), 10)


def test_occurrences_threshold_reached_quickly():
    occurrences = new_test_occurrences()
    results = [occurrences.add(HOST) for _ in range(9)]
    assert results == [False] * 9
    assert occurrences.add(HOST) is True


def test_occurrences_window_slides():
    occurrences = new_test_occurrences()
    assert [occurrences.add(HOST) for _ in range(5)] == [False] * 5
    time.sleep(0.1)
    assert [occurrences.add(HOST) for _ in range(9)] == [False] * 9
    assert occurrences.add(HOST) is True


@patch("gerberos.occurrences.monotonic", side_effect=[0.0, 1.0, 5.0])
def test_registry_cleared_after_report(_clock):
    occurrences = Occurrences(timedelta(seconds=2), 2)
    assert occurrences.add(HOST) is False
    assert occurrences.add(HOST) is True
    assert occurrences.add(HOST) is False


@patch("gerberos.occurrences.monotonic", side_effect=[0.0, 0.5, 2.0, 2.4, 2.5])
def test_old_hits_drop_out_of_window(_clock):
    occurrences = Occurrences(1.0, 3)
    assert [occurrences.add(HOST) for _ in range(5)] == [False, False, False, False, True]


@patch("gerberos.occurrences.monotonic", side_effect=[0.0, 0.0, 0.0, 0.0])
def test_hosts_are_counted_separately(_clock):
    occurrences = Occurrences(timedelta(seconds=1), 2)
    assert occurrences.add("10.0.0.1") is False
    assert occurrences.add("10.0.0.2") is False
    assert occurrences.add("10.0.0.1") is True
    assert occurrences.add("10.0.0.2") is True