"""Pydantic v2 configuration schema with strict validation."""

from enum import StrEnum

from pydantic import BaseModel, Field


class NotifierMode(StrEnum):
    DRY_RUN = "dry-run"
    SMTP = "smtp"


class ProviderConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "https://api.openweathermap.org/data/2.5"
    api_key: str = ""
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)


class CacheConfig(BaseModel):
    model_config = {"extra": "forbid"}

    ttl_seconds: int = Field(default=600, ge=1)


class AlertsConfig(BaseModel):
    model_config = {"extra": "forbid"}

    # 0 = notify on every run the condition holds
    cooldown_minutes: int = Field(default=0, ge=0)
    claim_ttl_minutes: int = Field(default=15, ge=1)


class SchedulerConfig(BaseModel):
    model_config = {"extra": "forbid"}

    interval_minutes: int = Field(default=60, ge=1, le=1440)
    max_workers: int = Field(default=4, ge=1, le=32)


class EmailConfig(BaseModel):
    model_config = {"extra": "forbid"}

    host: str = "localhost"
    port: int = Field(default=587, ge=1, le=65535)
    username: str = ""
    password: str = ""
    from_address: str = "alerts@localhost"
    use_tls: bool = True


class NotifierConfig(BaseModel):
    model_config = {"extra": "forbid"}

    mode: NotifierMode = NotifierMode.DRY_RUN
    email: EmailConfig = EmailConfig()


class AppConfig(BaseModel):
    model_config = {"extra": "forbid"}

    provider: ProviderConfig = ProviderConfig()
    cache: CacheConfig = CacheConfig()
    alerts: AlertsConfig = AlertsConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    notifier: NotifierConfig = NotifierConfig()
