"""Error taxonomy for the weather lookup and alert pipeline."""


class WeatherAlertError(Exception):
    """Base class for all weatheralert errors."""


class CityNotFound(WeatherAlertError):
    """Provider does not know the requested location. Not retried."""

    def __init__(self, city: str):
        super().__init__(f"City not found: {city}")
        self.city = city


class ProviderError(WeatherAlertError):
    """Transient provider failure: timeout, transport, non-2xx, bad payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(WeatherAlertError):
    """Raised when a repository write or read fails."""


class NotificationError(WeatherAlertError):
    """Raised when a notifier could not deliver a message."""


class InvalidThreshold(WeatherAlertError, ValueError):
    """Threshold value does not fit the alert condition."""
