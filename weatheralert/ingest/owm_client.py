"""OpenWeatherMap current-weather client."""

import logging

import httpx

from weatheralert.errors import CityNotFound, ProviderError

logger = logging.getLogger(__name__)

OWM_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_USER_AGENT = "weatheralert/0.1.0"
UNITS = "metric"


class OpenWeatherClient:
    """Thin wrapper around the provider's ``/weather`` endpoint.

    Units are always metric. Every call is bounded by ``timeout``; a
    timeout is reported as ProviderError like any other transport failure.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = OWM_BASE_URL,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

    def get_current(self, city: str) -> dict:
        """Fetch the raw current-weather payload for a city."""
        url = f"{self.base_url}/weather"
        params = {"q": city, "units": UNITS, "appid": self.api_key}
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        try:
            resp = httpx.get(url, params=params, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.warning("Provider timeout for %s after %.1fs", city, self.timeout)
            raise ProviderError(f"Timed out fetching weather for {city}") from e
        except httpx.RequestError as e:
            logger.warning("Provider request error for %s: %s", city, e)
            raise ProviderError(f"Request failed for {city}: {e}") from e

        if resp.status_code == 404:
            raise CityNotFound(city)
        if resp.status_code >= 400:
            logger.error(
                "Provider returned %d for %s: %s", resp.status_code, city, resp.text[:200]
            )
            raise ProviderError(
                f"HTTP {resp.status_code} fetching weather for {city}", resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderError(f"Malformed JSON for {city}", resp.status_code) from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected payload type for {city}", resp.status_code)
        # Some deployments answer 200 with an error body
        if str(payload.get("cod", "200")) == "404":
            raise CityNotFound(city)
        return payload
