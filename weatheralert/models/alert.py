"""User, saved location and alert models."""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from weatheralert.errors import InvalidThreshold


class AlertCondition(StrEnum):
    TEMP_GT = "temp_gt"
    TEMP_LT = "temp_lt"
    HUMIDITY_GT = "humidity_gt"
    WIND_GT = "wind_gt"
    RAIN_LIKELY = "rain_likely"
    DESC_CONTAINS = "desc_contains"


NUMERIC_CONDITIONS = frozenset({
    AlertCondition.TEMP_GT,
    AlertCondition.TEMP_LT,
    AlertCondition.HUMIDITY_GT,
    AlertCondition.WIND_GT,
    AlertCondition.RAIN_LIKELY,
})


@dataclass(frozen=True)
class NumericThreshold:
    value: float


@dataclass(frozen=True)
class TextThreshold:
    text: str


Threshold: TypeAlias = NumericThreshold | TextThreshold


def parse_threshold(condition: str, raw: object) -> Threshold:
    """Validate a user-supplied threshold for a condition.

    Numeric conditions accept numbers or numeric strings. ``rain_likely``
    falls back to 0 mm when no threshold is given. ``desc_contains`` needs
    a non-empty string.
    """
    try:
        cond = AlertCondition(condition)
    except ValueError:
        raise InvalidThreshold(f"Unknown alert condition: {condition!r}") from None

    if cond in NUMERIC_CONDITIONS:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if cond == AlertCondition.RAIN_LIKELY:
                return NumericThreshold(0.0)
            raise InvalidThreshold(f"Condition {cond} requires a numeric threshold")
        if isinstance(raw, bool):
            raise InvalidThreshold(f"Invalid threshold {raw!r} for {cond}")
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise InvalidThreshold(f"Invalid threshold {raw!r} for {cond}") from None
        if math.isnan(value) or math.isinf(value):
            raise InvalidThreshold(f"Invalid threshold {raw!r} for {cond}")
        return NumericThreshold(value)

    if not isinstance(raw, str) or not raw.strip():
        raise InvalidThreshold(f"Condition {cond} requires a non-empty text threshold")
    return TextThreshold(raw.strip())


def threshold_to_storage(threshold: Threshold) -> tuple[str, str]:
    """Split a threshold into (kind, value) columns."""
    if isinstance(threshold, NumericThreshold):
        return "numeric", repr(threshold.value)
    return "text", threshold.text


def threshold_from_storage(kind: str, value: str) -> Threshold:
    if kind == "numeric":
        return NumericThreshold(float(value))
    return TextThreshold(value)


@dataclass(frozen=True)
class User:
    id: int
    email: str
    name: str = ""


@dataclass(frozen=True)
class SavedLocation:
    id: int
    user_id: int
    label: str
    city: str  # normalized
    latitude: float | None = None
    longitude: float | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Alert:
    id: int
    user_id: int
    location_id: int
    condition: str
    threshold: Threshold
    is_enabled: bool = True
    last_notified: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class ResolvedAlert:
    """An alert joined with its owner and location.

    ``user`` or ``location`` is None when the reference no longer resolves.
    """

    alert: Alert
    user: User | None
    location: SavedLocation | None

    @property
    def is_dangling(self) -> bool:
        return self.user is None or self.location is None

    @property
    def city(self) -> str:
        if self.location is None:
            return ""
        return self.location.city
