"""Alert evaluator: pure mapping of (condition, threshold, snapshot) to a verdict."""

import logging

from weatheralert.models.alert import (
    AlertCondition,
    NumericThreshold,
    TextThreshold,
    Threshold,
)
from weatheralert.models.weather import WeatherSnapshot

logger = logging.getLogger(__name__)


def evaluate(condition: str, threshold: Threshold | None, snapshot: WeatherSnapshot) -> bool:
    """Return True when the alert should notify.

    Never raises: an unknown condition or a threshold of the wrong kind
    evaluates to False.
    """
    try:
        return _evaluate(condition, threshold, snapshot)
    except Exception:
        logger.exception("Error evaluating condition %r", condition)
        return False


def _evaluate(condition: str, threshold: Threshold | None, snapshot: WeatherSnapshot) -> bool:
    numeric = _numeric(threshold)
    description = snapshot.description if isinstance(snapshot.description, str) else ""

    if condition == AlertCondition.TEMP_GT:
        return numeric is not None and _is_num(snapshot.temperature) and snapshot.temperature > numeric
    elif condition == AlertCondition.TEMP_LT:
        return numeric is not None and _is_num(snapshot.temperature) and snapshot.temperature < numeric
    elif condition == AlertCondition.HUMIDITY_GT:
        return numeric is not None and _is_num(snapshot.humidity) and snapshot.humidity > numeric
    elif condition == AlertCondition.WIND_GT:
        return numeric is not None and _is_num(snapshot.wind_speed) and snapshot.wind_speed > numeric
    elif condition == AlertCondition.RAIN_LIKELY:
        # a text threshold is a type mismatch, a missing one means 0 mm
        if threshold is not None and numeric is None:
            return False
        rain_threshold = numeric if numeric is not None else 0.0
        has_rain_volume = _is_num(snapshot.rain_volume) and snapshot.rain_volume > rain_threshold
        return has_rain_volume or "rain" in description.lower()
    elif condition == AlertCondition.DESC_CONTAINS:
        if not isinstance(threshold, TextThreshold) or not isinstance(threshold.text, str):
            return False
        return threshold.text.lower() in description.lower()
    else:
        logger.warning("Unknown alert condition: %s", condition)
        return False


def _numeric(threshold: Threshold | None) -> float | None:
    if isinstance(threshold, NumericThreshold) and _is_num(threshold.value):
        return float(threshold.value)
    return None


def _is_num(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def format_condition(condition: str, threshold: Threshold | None) -> str:
    """Human readable phrase for a condition, used in notifications."""
    if isinstance(threshold, NumericThreshold):
        shown = f"{threshold.value:g}"
    elif isinstance(threshold, TextThreshold):
        shown = threshold.text
    else:
        shown = ""

    if condition == AlertCondition.TEMP_GT:
        return f"Temperature is above {shown}°C"
    elif condition == AlertCondition.TEMP_LT:
        return f"Temperature is below {shown}°C"
    elif condition == AlertCondition.HUMIDITY_GT:
        return f"Humidity is above {shown}%"
    elif condition == AlertCondition.WIND_GT:
        return f"Wind speed is above {shown} m/s"
    elif condition == AlertCondition.RAIN_LIKELY:
        return f"Rain is likely (more than {shown or '0'} mm or rain reported)"
    elif condition == AlertCondition.DESC_CONTAINS:
        return f'Description contains "{shown}"'
    else:
        return f"{condition} {shown}".strip()
