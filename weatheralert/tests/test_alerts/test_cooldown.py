"""Tests for the notification cooldown check."""

from datetime import UTC, datetime, timedelta

from weatheralert.alerts.cooldown import check
from weatheralert.models.common import to_iso

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class TestCooldown:
    def test_never_notified(self):
        assert check(None, NOW, 30) is True

    def test_disabled_when_zero(self):
        assert check(to_iso(NOW), NOW, 0) is True

    def test_within_window(self):
        last = to_iso(NOW - timedelta(minutes=10))
        assert check(last, NOW, 30) is False

    def test_window_elapsed(self):
        last = to_iso(NOW - timedelta(minutes=30))
        assert check(last, NOW, 30) is True

    def test_naive_timestamp_assumed_utc(self):
        last = (NOW - timedelta(minutes=5)).replace(tzinfo=None).isoformat()
        assert check(last, NOW, 30) is False

    def test_unparseable_timestamp_allows(self):
        assert check("yesterday", NOW, 30) is True
