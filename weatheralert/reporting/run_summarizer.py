"""Run summarizer: aggregates alert run outcomes into a RunSummary."""

from dataclasses import dataclass, field

from weatheralert.models.reporting import RunSummary


@dataclass
class CityOutcome:
    """What happened while processing one city's alert group."""

    city: str
    failed: bool = False
    fetched: bool = False
    triggered: int = 0
    sent: int = 0
    send_failed: int = 0
    suppressed_cooldown: int = 0
    claims_lost: int = 0
    errors: list[str] = field(default_factory=list)


class RunSummarizer:
    def __init__(self, run_id: str, started_at: str):
        self.summary = RunSummary(run_id=run_id, started_at=started_at)

    def record_load(self, loaded: int, skipped: int) -> None:
        self.summary.alerts_loaded = loaded
        self.summary.alerts_skipped = skipped

    def record_city(self, outcome: CityOutcome) -> None:
        s = self.summary
        s.cities_checked += 1
        if outcome.failed:
            s.cities_failed += 1
        if outcome.fetched:
            s.provider_calls += 1
        s.alerts_triggered += outcome.triggered
        s.notifications_sent += outcome.sent
        s.notifications_failed += outcome.send_failed
        s.suppressed_cooldown += outcome.suppressed_cooldown
        s.claims_lost += outcome.claims_lost
        s.errors.extend(outcome.errors)

    def record_skipped(self) -> None:
        self.summary.skipped = True

    def record_duration(self, seconds: float) -> None:
        self.summary.duration_seconds = seconds

    def record_error(self, error: str) -> None:
        self.summary.errors.append(error)

    def finalize(self) -> RunSummary:
        return self.summary
