"""Alert runner: one pass over all enabled alerts.

Per run:
1. Load enabled alerts joined with user and location.
2. Group by normalized city, so each city costs at most one provider call.
3. Process cities concurrently in a bounded worker pool; one city's
   failure never affects another.
4. For each alert whose condition holds: check cooldown, claim the alert
   atomically, notify, then record ``last_notified`` (or release the claim
   when delivery failed so the next run retries).
"""

import logging
import sqlite3
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
from pathlib import Path

from weatheralert.alerts import cooldown
from weatheralert.alerts.evaluator import evaluate
from weatheralert.config.loader import config_hash
from weatheralert.config.schema import AppConfig
from weatheralert.errors import CityNotFound, ProviderError
from weatheralert.ingest.owm_client import OpenWeatherClient
from weatheralert.ingest.weather_cache import WeatherCache
from weatheralert.ingest.weather_fetcher import WeatherFetcher
from weatheralert.ingest.weather_lookup import WeatherLookup
from weatheralert.models.alert import ResolvedAlert
from weatheralert.models.common import to_iso, utc_now
from weatheralert.models.reporting import RunSummary
from weatheralert.models.weather import SnapshotSource, WeatherSnapshot
from weatheralert.notify.base import Notifier, build_notifier
from weatheralert.notify.messages import build_alert_message
from weatheralert.reporting.formatters import format_summary_json, format_summary_text
from weatheralert.reporting.run_summarizer import CityOutcome, RunSummarizer
from weatheralert.storage import alert_repo, run_repo
from weatheralert.storage.database import connect, init_db
from weatheralert.storage.history_repo import HistoryStore

logger = logging.getLogger(__name__)


def group_by_city(
    resolved: list[ResolvedAlert],
) -> tuple[dict[str, list[ResolvedAlert]], int]:
    """Partition alerts by city. Returns (groups, dangling_count)."""
    groups: dict[str, list[ResolvedAlert]] = {}
    dangling = 0
    for ra in resolved:
        if ra.is_dangling:
            logger.warning(
                "Skipping alert %d: missing user or location (possibly deleted)",
                ra.alert.id,
            )
            dangling += 1
            continue
        groups.setdefault(ra.city, []).append(ra)
    return groups, dangling


class AlertRunner:
    def __init__(
        self,
        config: AppConfig,
        db_path: str | Path,
        lookup: WeatherLookup,
        notifier: Notifier,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.db_path = db_path
        self.lookup = lookup
        self.notifier = notifier
        self.clock = clock
        self._run_lock = threading.Lock()

    def run(self) -> RunSummary:
        """Execute one alert run. Never raises.

        A call that arrives while another run on this runner is still in
        flight is skipped, not queued.
        """
        run_id = str(uuid.uuid4())
        now = self.clock()
        summarizer = RunSummarizer(run_id, to_iso(now))

        if not self._run_lock.acquire(blocking=False):
            logger.warning("Alert run already in progress, skipping run %s", run_id[:8])
            summarizer.record_skipped()
            return summarizer.finalize()

        try:
            return self._run(run_id, now, summarizer)
        finally:
            self._run_lock.release()

    def _run(self, run_id: str, now: datetime, summarizer: RunSummarizer) -> RunSummary:
        start_time = time.monotonic()
        logger.info("Running alert check %s", run_id[:8])

        try:
            conn = init_db(self.db_path)
        except sqlite3.Error as e:
            logger.exception("Cannot open database %s", self.db_path)
            summarizer.record_error(f"Database unavailable: {e}")
            return summarizer.finalize()

        try:
            run_repo.create_run(conn, run_id, to_iso(now), config_hash(self.config))

            resolved = alert_repo.list_enabled_resolved(conn)
            groups, dangling = group_by_city(resolved)
            summarizer.record_load(len(resolved), dangling)

            if not groups:
                logger.info("No active alerts found")
            else:
                logger.info(
                    "Found %d active alerts across %d cities", len(resolved), len(groups)
                )
                for outcome in self._process_cities(run_id, now, groups):
                    summarizer.record_city(outcome)

            summarizer.record_duration(time.monotonic() - start_time)
            summary = summarizer.finalize()
            run_repo.complete_run(
                conn,
                run_id,
                "completed" if not summary.errors else "completed_with_errors",
                to_iso(self.clock()),
                summary_json=format_summary_json(summary),
                alerts_loaded=summary.alerts_loaded,
                cities_checked=summary.cities_checked,
                cities_failed=summary.cities_failed,
                alerts_triggered=summary.alerts_triggered,
                notifications_sent=summary.notifications_sent,
                notifications_failed=summary.notifications_failed,
            )
            logger.info("\n%s", format_summary_text(summary))
            return summary

        except Exception as e:
            logger.exception("Alert run %s failed", run_id[:8])
            summarizer.record_error(str(e))
            summarizer.record_duration(time.monotonic() - start_time)
            summary = summarizer.finalize()
            try:
                run_repo.complete_run(
                    conn, run_id, "failed", to_iso(self.clock()), error_message=str(e)
                )
            except sqlite3.Error:
                logger.exception("Could not record failure of run %s", run_id[:8])
            return summary

        finally:
            conn.close()

    def _process_cities(
        self, run_id: str, now: datetime, groups: dict[str, list[ResolvedAlert]]
    ) -> list[CityOutcome]:
        workers = min(self.config.scheduler.max_workers, len(groups))
        outcomes: list[CityOutcome] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="alert-city") as pool:
            futures = {
                pool.submit(self._process_city, run_id, now, city, alerts): city
                for city, alerts in groups.items()
            }
            for future in as_completed(futures):
                city = futures[future]
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    logger.exception("Error processing alerts for city %s", city)
                    outcomes.append(CityOutcome(city=city, failed=True, errors=[f"{city}: {e}"]))
        return outcomes

    def _process_city(
        self, run_id: str, now: datetime, city: str, alerts: list[ResolvedAlert]
    ) -> CityOutcome:
        outcome = CityOutcome(city=city)
        representative = alerts[0].location
        assert representative is not None

        try:
            result = self.lookup.lookup(city, representative.id)
        except CityNotFound:
            logger.warning("City %s not found by provider, skipping %d alerts", city, len(alerts))
            outcome.failed = True
            return outcome
        except ProviderError as e:
            logger.warning(
                "Could not get weather for %s, skipping %d alerts: %s", city, len(alerts), e
            )
            outcome.failed = True
            return outcome

        outcome.fetched = result.source == SnapshotSource.API

        conn = connect(self.db_path)
        try:
            for resolved in alerts:
                try:
                    self._process_alert(conn, run_id, now, resolved, result.snapshot, outcome)
                except Exception as e:
                    logger.exception("Error processing alert %d", resolved.alert.id)
                    outcome.errors.append(f"alert {resolved.alert.id}: {e}")
        finally:
            conn.close()
        return outcome

    def _process_alert(
        self,
        conn: sqlite3.Connection,
        run_id: str,
        now: datetime,
        resolved: ResolvedAlert,
        snapshot: WeatherSnapshot,
        outcome: CityOutcome,
    ) -> None:
        alert = resolved.alert
        if not evaluate(alert.condition, alert.threshold, snapshot):
            return
        outcome.triggered += 1

        if not cooldown.check(alert.last_notified, now, self.config.alerts.cooldown_minutes):
            logger.info("Alert %d triggered but within cooldown", alert.id)
            outcome.suppressed_cooldown += 1
            return

        claim_ttl = timedelta(minutes=self.config.alerts.claim_ttl_minutes)
        if not alert_repo.claim_alert(conn, alert.id, run_id, alert.last_notified, now, claim_ttl):
            logger.info("Alert %d changed or owned by another run, skipping", alert.id)
            outcome.claims_lost += 1
            return

        message = build_alert_message(resolved, snapshot)
        logger.info(
            "ALERT TRIGGERED: user %s, location %s (%s), condition %s",
            message.to, resolved.location.label if resolved.location else "?",
            resolved.city, alert.condition,
        )
        try:
            self.notifier.send(message.to, message.subject, message.text, message.html)
        except Exception:
            logger.exception("Notification for alert %d failed, will retry next run", alert.id)
            alert_repo.release_claim(conn, alert.id, run_id)
            outcome.send_failed += 1
            return

        alert_repo.complete_claim(conn, alert.id, run_id, now)
        outcome.sent += 1


def build_lookup(config: AppConfig, db_path: str | Path) -> WeatherLookup:
    """Wire the process-wide cache, provider client and history store."""
    client = OpenWeatherClient(
        api_key=config.provider.api_key,
        base_url=config.provider.base_url,
        timeout=config.provider.timeout_seconds,
    )
    if not config.provider.api_key:
        logger.warning("No provider API key configured (set WEATHER_API_KEY)")
    return WeatherLookup(
        cache=WeatherCache(ttl_seconds=config.cache.ttl_seconds),
        fetcher=WeatherFetcher(client),
        history=HistoryStore(db_path),
    )


def build_runner(
    config: AppConfig,
    db_path: str | Path,
    lookup: WeatherLookup | None = None,
    notifier: Notifier | None = None,
) -> AlertRunner:
    return AlertRunner(
        config,
        db_path,
        lookup or build_lookup(config, db_path),
        notifier or build_notifier(config.notifier),
    )
