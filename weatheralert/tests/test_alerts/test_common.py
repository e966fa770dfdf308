"""Tests for shared date helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from weatheralert.models.common import parse_date_bound


class TestParseDateBound:
    def test_date_start_is_midnight(self):
        assert parse_date_bound("2026-10-19") == datetime(2026, 10, 19, tzinfo=UTC)

    def test_date_end_covers_whole_day(self):
        end = parse_date_bound("2026-10-19", end_of_day=True)
        assert end == datetime(2026, 10, 19, 23, 59, 59, 999999, tzinfo=UTC)

    def test_timestamp_end_kept_as_given(self):
        end = parse_date_bound("2026-10-19T06:30:00", end_of_day=True)
        assert end == datetime(2026, 10, 19, 6, 30, tzinfo=UTC)

    def test_offset_preserved(self):
        dt = parse_date_bound("2026-10-19T06:30:00+02:00")
        assert dt.utcoffset() == timedelta(hours=2)
        assert dt == datetime(2026, 10, 19, 6, 30, tzinfo=timezone(timedelta(hours=2)))

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_date_bound("yesterday")
