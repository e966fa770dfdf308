"""Tests for user, location, alert, history and run repositories."""

import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from weatheralert.errors import InvalidThreshold, PersistenceError
from weatheralert.models.alert import NumericThreshold, TextThreshold
from weatheralert.models.weather import SnapshotSource
from weatheralert.storage import (
    alert_repo,
    history_repo,
    location_repo,
    run_repo,
    user_repo,
)
from weatheralert.storage.history_repo import HistoryStore


@pytest.fixture
def user(db: sqlite3.Connection):
    return user_repo.create_user(db, "ana@example.com", "Ana")


@pytest.fixture
def location(db: sqlite3.Connection, user):
    return location_repo.create_location(db, user.id, "Home", "  London ")


class TestUserRepo:
    def test_create_and_get(self, db: sqlite3.Connection):
        created = user_repo.create_user(db, " bo@example.com ", "Bo")
        assert created.email == "bo@example.com"
        assert user_repo.get_user(db, created.id) == created
        assert user_repo.get_user_by_email(db, "bo@example.com") == created

    def test_duplicate_email(self, db: sqlite3.Connection, user):
        with pytest.raises(PersistenceError):
            user_repo.create_user(db, "ana@example.com")

    def test_missing(self, db: sqlite3.Connection):
        assert user_repo.get_user(db, 999) is None


class TestLocationRepo:
    def test_city_normalized(self, location):
        assert location.city == "london"
        assert location.label == "Home"

    def test_duplicate_city_for_user(self, db: sqlite3.Connection, user, location):
        with pytest.raises(PersistenceError):
            location_repo.create_location(db, user.id, "Again", "LONDON")

    def test_empty_city(self, db: sqlite3.Connection, user):
        with pytest.raises(PersistenceError):
            location_repo.create_location(db, user.id, "Nowhere", "   ")

    def test_unknown_user(self, db: sqlite3.Connection):
        with pytest.raises(PersistenceError):
            location_repo.create_location(db, 999, "Home", "paris")

    def test_list_and_delete(self, db: sqlite3.Connection, user, location):
        location_repo.create_location(db, user.id, "Work", "Paris")
        assert [loc.city for loc in location_repo.list_locations(db, user.id)] == ["london", "paris"]
        assert location_repo.delete_location(db, location.id) is True
        assert location_repo.get_location(db, location.id) is None

    def test_delete_cascades_alerts(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "temp_gt", 20)
        location_repo.delete_location(db, location.id)
        assert alert_repo.get_alert(db, alert.id) is None


class TestAlertRepo:
    def test_create_numeric(self, db: sqlite3.Connection, user, location):
        alert = alert_repo.create_alert(db, location.id, "temp_gt", "20")
        assert alert.user_id == user.id
        assert alert.threshold == NumericThreshold(20.0)
        assert alert.is_enabled
        assert alert.last_notified is None

    def test_create_text(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "desc_contains", "snow")
        assert alert.threshold == TextThreshold("snow")

    def test_invalid_threshold(self, db: sqlite3.Connection, location):
        with pytest.raises(InvalidThreshold):
            alert_repo.create_alert(db, location.id, "temp_gt", "hot")

    def test_unknown_location(self, db: sqlite3.Connection):
        with pytest.raises(PersistenceError):
            alert_repo.create_alert(db, 999, "temp_gt", 20)

    def test_duplicate_rejected(self, db: sqlite3.Connection, location):
        alert_repo.create_alert(db, location.id, "temp_gt", 20)
        with pytest.raises(PersistenceError):
            alert_repo.create_alert(db, location.id, "temp_gt", 20.0)

    def test_enable_disable(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "wind_gt", 10)
        assert alert_repo.set_enabled(db, alert.id, False) is True
        assert alert_repo.get_alert(db, alert.id).is_enabled is False
        assert alert_repo.list_enabled_resolved(db) == []

    def test_update_threshold(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "temp_gt", 20)
        updated = alert_repo.update_threshold(db, alert.id, "desc_contains", "fog")
        assert updated.condition == "desc_contains"
        assert updated.threshold == TextThreshold("fog")

    def test_delete(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "temp_gt", 20)
        assert alert_repo.delete_alert(db, alert.id) is True
        assert alert_repo.delete_alert(db, alert.id) is False

    def test_list_by_user(self, db: sqlite3.Connection, user, location):
        alert_repo.create_alert(db, location.id, "temp_gt", 20)
        other = user_repo.create_user(db, "cy@example.com")
        other_loc = location_repo.create_location(db, other.id, "Home", "Oslo")
        alert_repo.create_alert(db, other_loc.id, "temp_lt", 0)
        assert len(alert_repo.list_alerts(db)) == 2
        assert len(alert_repo.list_alerts(db, user.id)) == 1

    def test_list_enabled_resolved(self, db: sqlite3.Connection, user, location):
        alert_repo.create_alert(db, location.id, "temp_gt", 20)
        resolved = alert_repo.list_enabled_resolved(db)
        assert len(resolved) == 1
        assert resolved[0].user == user
        assert resolved[0].location.city == "london"
        assert not resolved[0].is_dangling

    def test_dangling_reference_resolves_to_none(self, db: sqlite3.Connection, location):
        alert = alert_repo.create_alert(db, location.id, "temp_gt", 20)
        db.execute("PRAGMA foreign_keys=OFF")
        db.execute("DELETE FROM saved_locations WHERE id = ?", (location.id,))
        db.commit()

        resolved = alert_repo.list_enabled_resolved(db)
        assert resolved[0].alert.id == alert.id
        assert resolved[0].location is None
        assert resolved[0].is_dangling


class TestHistoryRepo:
    def test_range_is_inclusive_and_ordered(self, db: sqlite3.Connection, snapshot_factory):
        base = datetime(2026, 10, 1, tzinfo=UTC)
        for hours, temp in [(2, 12.0), (0, 10.0), (1, 11.0), (5, 15.0)]:
            history_repo.save_history(
                db, 1, "London", snapshot_factory(temperature=temp), SnapshotSource.API,
                logged_at=(base + timedelta(hours=hours)).isoformat(timespec="microseconds"),
            )

        records = history_repo.get_history(db, 1, base, base + timedelta(hours=2))
        assert [r.snapshot.temperature for r in records] == [10.0, 11.0, 12.0]
        assert records[0].city == "london"

    def test_other_location_excluded(self, db: sqlite3.Connection, snapshot_factory):
        history_repo.save_history(db, 2, "paris", snapshot_factory(), SnapshotSource.API)
        now = datetime.now(UTC)
        assert history_repo.get_history(db, 1, now - timedelta(days=1), now) == []

    def test_latest_for_city(self, db: sqlite3.Connection, snapshot_factory):
        history_repo.save_history(db, 1, "london", snapshot_factory(temperature=1.0),
                                  SnapshotSource.API, logged_at="2026-10-01T00:00:00.000000+00:00")
        history_repo.save_history(db, 1, "london", snapshot_factory(temperature=2.0),
                                  SnapshotSource.CACHE, logged_at="2026-10-02T00:00:00.000000+00:00")
        latest = history_repo.latest_for_city(db, "London")
        assert latest.snapshot.temperature == 2.0
        assert latest.source == SnapshotSource.CACHE
        assert history_repo.latest_for_city(db, "oslo") is None

    def test_store_roundtrip_keeps_all_fields(self, db_path: Path, snapshot_factory):
        store = HistoryStore(db_path)
        snap = snapshot_factory(description="light rain", rain_volume=0.4)
        store.save(3, "london", snap, SnapshotSource.API)
        now = datetime.now(UTC)
        records = store.query(3, now - timedelta(minutes=5), now + timedelta(minutes=5))
        assert records[0].snapshot == snap

    def test_store_rejects_reversed_range(self, db_path: Path):
        now = datetime.now(UTC)
        with pytest.raises(ValueError):
            HistoryStore(db_path).query(1, now, now - timedelta(hours=1))

    def test_store_wraps_sqlite_errors(self, tmp_path: Path, snapshot_factory):
        store = HistoryStore(tmp_path / "unmigrated.db")
        with pytest.raises(PersistenceError):
            store.save(1, "london", snapshot_factory(), SnapshotSource.API)


class TestRunRepo:
    def test_create_and_complete(self, db: sqlite3.Connection):
        run_repo.create_run(db, "run-1", "2026-10-19T12:00:00.000000+00:00", "abc")
        run_repo.complete_run(
            db, "run-1", "completed", "2026-10-19T12:00:05.000000+00:00",
            summary_json="{}", alerts_loaded=3, notifications_sent=1,
        )
        run = run_repo.get_latest_run(db)
        assert run["status"] == "completed"
        assert run["alerts_loaded"] == 3
        assert run["notifications_sent"] == 1
        assert run["config_hash"] == "abc"

    def test_list_runs_newest_first(self, db: sqlite3.Connection):
        run_repo.create_run(db, "old", "2026-10-18T00:00:00.000000+00:00")
        run_repo.create_run(db, "new", "2026-10-19T00:00:00.000000+00:00")
        assert [r["run_id"] for r in run_repo.list_runs(db)] == ["new", "old"]
        assert len(run_repo.list_runs(db, limit=1)) == 1

    def test_no_runs(self, db: sqlite3.Connection):
        assert run_repo.get_latest_run(db) is None
