"""
Tests for time helpers.
"""

from datetime import date, datetime, timezone

import pytest

from healthbridge.shared.clock import local_day_range_millis, local_today, parse_iso_date
from healthbridge.shared.numbers import round_half_up


class TestLocalDay:

    def test_utc_day_range(self):
        start, end = local_day_range_millis(date(2024, 3, 15), "UTC")
        assert start == int(datetime(2024, 3, 15, tzinfo=timezone.utc).timestamp() * 1000)
        assert end - start == 24 * 3600 * 1000

    def test_offset_timezone(self):
        start, _ = local_day_range_millis(date(2024, 3, 15), "Asia/Almaty")
        utc_start = int(datetime(2024, 3, 15, tzinfo=timezone.utc).timestamp() * 1000)
        # Almaty is ahead of UTC, so its midnight comes earlier
        assert start < utc_start

    def test_dst_day_is_23_hours(self):
        start, end = local_day_range_millis(date(2024, 3, 31), "Europe/Berlin")
        assert end - start == 23 * 3600 * 1000

    def test_local_today_crosses_midnight(self):
        now = datetime(2024, 3, 15, 22, 30, tzinfo=timezone.utc)
        assert local_today("UTC", now) == date(2024, 3, 15)
        assert local_today("Asia/Tokyo", now) == date(2024, 3, 16)


class TestParseIsoDate:

    def test_valid(self):
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2024-2-29", "20240229", "2024/02/29", "", None, 20240229])
    def test_wrong_shape(self, value):
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            parse_iso_date(value, "metricDate")

    def test_impossible_date(self):
        with pytest.raises(ValueError, match="valid calendar date"):
            parse_iso_date("2023-02-29")


class TestRoundHalfUp:

    @pytest.mark.parametrize("value,expected", [
        (310.5, 311),
        (2.5, 3),
        (2.4999, 2),
        (0.0, 0),
        (7, 7),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected
