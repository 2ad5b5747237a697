from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_API_HOST_ENV = "SMART_PLUG_API_HOST"
_ACCESS_KEY_ENV = "SMART_PLUG_ACCESS_KEY"
_SECRET_KEY_ENV = "SMART_PLUG_SECRET_KEY"
_DEVICE_SN_ENV = "SMART_PLUG_DEVICE_SN"
_POLL_INTERVAL_ENV = "SMART_PLUG_POLL_INTERVAL_SECONDS"
_REQUEST_TIMEOUT_ENV = "SMART_PLUG_REQUEST_TIMEOUT_SECONDS"
_SOURCE_OFFSET_ENV = "SMART_PLUG_SOURCE_UTC_OFFSET_HOURS"
_DISPLAY_OFFSET_ENV = "SMART_PLUG_DISPLAY_UTC_OFFSET_HOURS"
_SERVER_HOST_ENV = "SMART_PLUG_SERVER_HOST"
_SERVER_PORT_ENV = "PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    api_host: str
    access_key: Optional[str]
    secret_key: Optional[str]
    device_sn: Optional[str]
    poll_interval_seconds: float
    request_timeout_seconds: float
    source_utc_offset_hours: float
    display_utc_offset_hours: float
    server_host: str
    server_port: int
    log_level: str

    @property
    def polling_enabled(self) -> bool:
        return bool(self.access_key and self.secret_key and self.device_sn)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_offset_hours(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    # UTC offsets range from -12:00 to +14:00.
    return parsed if -12 <= parsed <= 14 else default


def _read_port(default: int) -> int:
    value = os.getenv(_SERVER_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        api_host=_read_str_env(_API_HOST_ENV, "https://api-e.ecoflow.com"),
        access_key=_read_optional_env(_ACCESS_KEY_ENV, None),
        secret_key=_read_optional_env(_SECRET_KEY_ENV, None),
        device_sn=_read_optional_env(_DEVICE_SN_ENV, None),
        poll_interval_seconds=_read_positive_float(_POLL_INTERVAL_ENV, 10.0),
        request_timeout_seconds=_read_positive_float(_REQUEST_TIMEOUT_ENV, 10.0),
        source_utc_offset_hours=_read_offset_hours(_SOURCE_OFFSET_ENV, 8.0),
        display_utc_offset_hours=_read_offset_hours(_DISPLAY_OFFSET_ENV, 3.0),
        server_host=_read_str_env(_SERVER_HOST_ENV, "0.0.0.0"),
        server_port=_read_port(8000),
        log_level=_read_log_level("INFO"),
    )
