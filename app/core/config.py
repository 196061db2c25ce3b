from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    database_url: str
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    sms_timeout_seconds: float = 20.0
    owner_user_id: str = "00000000-0000-0000-0000-000000000001"
    timezone: str = "UTC"
    reminder_hour: int = 9
    scheduler_enabled: bool = True
    profile_store_path: str = "user_profile.json"
    log_level: str = "INFO"

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)


DEFAULT_OWNER_ID = "00000000-0000-0000-0000-000000000001"


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _get_int_env(name: str, default: int) -> int:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    value = _get_env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _parse_reminder_hour(value: int, default: int = 9) -> int:
    if 0 <= value <= 23:
        return value
    return default


def load_settings() -> Settings:
    database_url = _get_env("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required")

    return Settings(
        database_url=database_url,
        twilio_account_sid=_get_env("TWILIO_ACCOUNT_SID"),
        twilio_auth_token=_get_env("TWILIO_AUTH_TOKEN"),
        twilio_phone_number=_get_env("TWILIO_PHONE_NUMBER"),
        twilio_api_base=_get_env("TWILIO_API_BASE") or "https://api.twilio.com/2010-04-01",
        sms_timeout_seconds=_get_float_env("SMS_TIMEOUT_SECONDS", 20.0),
        owner_user_id=_get_env("OWNER_USER_ID", DEFAULT_OWNER_ID) or DEFAULT_OWNER_ID,
        timezone=_get_env("TIMEZONE") or "UTC",
        reminder_hour=_parse_reminder_hour(_get_int_env("REMINDER_HOUR", 9)),
        scheduler_enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        profile_store_path=_get_env("PROFILE_STORE_PATH") or "user_profile.json",
        log_level=(_get_env("LOG_LEVEL") or "INFO").upper(),
    )
