from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    smtp_base_url: str = "http://notify-mock:8025"

    # Tenant cache
    cache_backend: Literal["redis", "memory"] = "redis"
    cache_prefix: str = "tenant"
    cache_default_ttl: int = 3600
    cache_read_failure_as_miss: bool = False

    # OTP policy
    otp_code_length: int = 6
    otp_ttl_seconds: int = 300

    # Delivery
    sms_provider: Literal["http", "log"] = "log"
    sms_provider_url: str = "http://notify-mock:8025/sms"
    sms_api_key: str = ""
    sms_sender_id: str = ""
    sms_timeout_seconds: float = 30.0
    email_delivery_enabled: bool = False

    # Worker
    reaper_interval_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
