"""Output formatters for run summaries."""

import json
from dataclasses import asdict

from weatheralert.models.reporting import RunSummary


def format_summary_text(s: RunSummary) -> str:
    """Plain text summary for logging."""
    if s.skipped:
        return f"=== Alert Run {s.run_id[:8]} skipped (previous run still in flight) ==="
    lines = [
        f"=== Alert Run Complete | Run {s.run_id[:8]} ===",
        f"Alerts: {s.alerts_loaded} enabled, {s.alerts_skipped} skipped (dangling)",
        f"Cities: {s.cities_checked} checked, {s.cities_failed} failed, "
        f"{s.provider_calls} provider calls",
        f"Triggered: {s.alerts_triggered} | Sent: {s.notifications_sent} | "
        f"Failed: {s.notifications_failed}",
    ]
    if s.suppressed_cooldown or s.claims_lost:
        lines.append(
            f"Suppressed: {s.suppressed_cooldown} cooldown, "
            f"{s.claims_lost} owned by another run"
        )
    if s.errors:
        lines.append(f"Errors: {len(s.errors)}")
    lines.append(f"Duration: {s.duration_seconds:.1f}s")
    return "\n".join(lines)


def format_summary_json(s: RunSummary) -> str:
    """JSON summary for the runs table and programmatic consumption."""
    return json.dumps(asdict(s), indent=2)
