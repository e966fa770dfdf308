"""Alert notification message formatting."""

from dataclasses import dataclass
from html import escape

from weatheralert.alerts.evaluator import format_condition
from weatheralert.models.alert import ResolvedAlert
from weatheralert.models.weather import WeatherSnapshot


@dataclass(frozen=True)
class AlertMessage:
    to: str
    subject: str
    text: str
    html: str


def build_alert_message(resolved: ResolvedAlert, snapshot: WeatherSnapshot) -> AlertMessage:
    """Render the email for a triggered alert."""
    if resolved.user is None or resolved.location is None:
        raise ValueError(f"Alert {resolved.alert.id} has unresolved user or location")

    user, location, alert = resolved.user, resolved.location, resolved.alert
    greeting = user.name or "User"
    condition = format_condition(alert.condition, alert.threshold)
    place = f"{location.label} ({location.city})"

    weather_lines = [
        f"Temperature: {snapshot.temperature:g}°C",
        f"Feels Like: {snapshot.feels_like:g}°C",
        f"Humidity: {snapshot.humidity:g}%",
        f"Wind: {snapshot.wind_speed:g} m/s",
        f"Description: {snapshot.description}",
    ]

    text = "\n".join([
        f"Hi {greeting},",
        "",
        f"A weather alert you set for {place} has been triggered.",
        "",
        f"Condition: {condition}",
        "Current Weather:",
        *(f"- {line}" for line in weather_lines),
        "",
        "You can manage your alerts in the dashboard.",
    ])

    items = "\n".join(f"  <li>{escape(line)}</li>" for line in weather_lines)
    html = (
        f"<p>Hi {escape(greeting)},</p>\n"
        f"<p>A weather alert you set for <strong>{escape(place)}</strong> "
        "has been triggered.</p>\n"
        f"<p><strong>Condition:</strong> {escape(condition)}</p>\n"
        "<p><strong>Current Weather:</strong></p>\n"
        f"<ul>\n{items}\n</ul>\n"
        "<p>You can manage your alerts in the dashboard.</p>\n"
    )

    return AlertMessage(
        to=user.email,
        subject=f"Weather Alert Triggered for {location.label}",
        text=text,
        html=html,
    )
