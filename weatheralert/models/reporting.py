"""Run reporting models."""

from dataclasses import dataclass, field


@dataclass
class RunSummary:
    run_id: str
    started_at: str = ""
    skipped: bool = False
    alerts_loaded: int = 0
    alerts_skipped: int = 0
    cities_checked: int = 0
    cities_failed: int = 0
    provider_calls: int = 0
    alerts_triggered: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    suppressed_cooldown: int = 0
    claims_lost: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)
