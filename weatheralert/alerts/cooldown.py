"""Cooldown check: suppresses repeat notifications for the same alert."""

from datetime import datetime

from weatheralert.models.common import parse_timestamp


def check(last_notified: str | None, now: datetime, cooldown_minutes: int) -> bool:
    """True when the alert may notify again.

    ``cooldown_minutes == 0`` disables suppression: the alert notifies on
    every run its condition holds.
    """
    if cooldown_minutes <= 0:
        return True
    last = parse_timestamp(last_notified)
    if last is None:
        return True
    minutes_since = (now - last).total_seconds() / 60
    return minutes_since >= cooldown_minutes
