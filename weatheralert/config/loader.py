"""YAML config loader with environment overrides."""

import hashlib
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from weatheralert.config.schema import AppConfig

# env var -> dotted config key
ENV_OVERRIDES: dict[str, str] = {
    "WEATHER_API_KEY": "provider.api_key",
    "WEATHER_API_BASE_URL": "provider.base_url",
    "CACHE_TTL": "cache.ttl_seconds",
    "EMAIL_HOST": "notifier.email.host",
    "EMAIL_PORT": "notifier.email.port",
    "EMAIL_USER": "notifier.email.username",
    "EMAIL_PASS": "notifier.email.password",
    "EMAIL_FROM": "notifier.email.from_address",
}


def load_config(
    path: str | Path | None, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Load and validate config from a YAML file.

    A missing or empty file yields the defaults. Secrets and deployment
    specific values are then overlaid from the environment.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    env = os.environ if environ is None else environ
    for var, dotted_key in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            _set_dotted(raw, dotted_key, value)

    return AppConfig(**raw)


def config_hash(config: AppConfig) -> str:
    """Deterministic short hash of the config, secrets excluded."""
    data = config.model_dump_json(
        exclude={"provider": {"api_key"}, "notifier": {"email": {"password"}}}
    )
    return hashlib.sha256(data.encode()).hexdigest()[:16]


def _set_dotted(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value
