"""
Tests for open-now evaluation and haversine distance
"""
from datetime import datetime

import pytest

from loyalty_api.domain.store import DayHours, haversine_distance, is_store_open

MONDAY = datetime(2025, 10, 20)


def at(hour, minute=0, day=MONDAY):
    return day.replace(hour=hour, minute=minute)


class TestIsStoreOpen:

    def test_within_hours(self):
        hours = {"monday": DayHours(open="09:00", close="18:00")}
        assert is_store_open(hours, at(9)) is True
        assert is_store_open(hours, at(17, 59)) is True
        assert is_store_open(hours, at(18)) is False
        assert is_store_open(hours, at(8, 59)) is False

    def test_closed_or_missing_day(self):
        assert is_store_open({"monday": DayHours(is_closed=True)}, at(12)) is False
        assert is_store_open({"tuesday": DayHours()}, at(12)) is False

    def test_overnight_hours(self):
        hours = {"monday": DayHours(open="20:00", close="02:00")}
        assert is_store_open(hours, at(23)) is True
        assert is_store_open(hours, at(1)) is True
        assert is_store_open(hours, at(12)) is False

    def test_bad_time_is_closed(self):
        assert is_store_open({"monday": DayHours(open="nine", close="18:00")}, at(12)) is False


def test_haversine_known_distance():
    # Springfield, IL -> Chicago, IL
    assert haversine_distance(39.7817, -89.6501, 41.8781, -87.6298) == pytest.approx(288.5, abs=2)


def test_haversine_same_point():
    assert haversine_distance(10.0, 20.0, 10.0, 20.0) == 0.0
