# priceportal/core/config.py
# - Reads env vars from ".env" if available, then the process environment.
# - Read once at import; there is no runtime reconfiguration.

from __future__ import annotations

from datetime import timezone, tzinfo
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./app.db"

    # session tokens
    SECRET_KEY: str = "CHANGE_THIS_TO_RANDOM_SECRET"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # shared secret of the identity-provider bridge (LINE login front end)
    AUTH_BRIDGE_SECRET: str = ""

    # object storage
    STORAGE_ROOT: str = "./storage"
    STORAGE_BUCKET: str = "price-images"
    STORAGE_PUBLIC_BASE_URL: str = "http://localhost:8000/storage"

    # Telegram forwarding
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_TIMEOUT_SECONDS: float = 10.0

    # "local time" for calendar day / month boundaries in reports
    APP_TIMEZONE: str = "UTC"

    FRONTEND_URL: str = ""
    LOG_LEVEL: str = "INFO"
    RUN_CREATE_ALL: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def sqlalchemy_database_url(self) -> str:
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url


settings = Settings()


@lru_cache(maxsize=8)
def _zone(name: str) -> tzinfo:
    if name.strip().upper() in ("UTC", "Z", ""):
        return timezone.utc
    from zoneinfo import ZoneInfo

    return ZoneInfo(name)


def local_timezone() -> tzinfo:
    return _zone(settings.APP_TIMEZONE)
