from __future__ import annotations

import logging
from typing import Iterable

from logging_config import ContextualFormatter
from services.query import build_default_query_service
from settings import get_settings
from storage.reading_store import build_default_store, display_timezone


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("SMART_PLUG_API_HOST", "https://api-a.example.test")
    monkeypatch.setenv("SMART_PLUG_ACCESS_KEY", "access")
    monkeypatch.setenv("SMART_PLUG_SECRET_KEY", "secret")
    monkeypatch.setenv("SMART_PLUG_DEVICE_SN", "HW52")
    monkeypatch.setenv("SMART_PLUG_POLL_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("SMART_PLUG_DISPLAY_UTC_OFFSET_HOURS", "2")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_store, build_default_query_service)
    _clear_caches(caches)

    try:
        settings = get_settings()
        service = build_default_query_service()

        assert settings.api_host == "https://api-a.example.test"
        assert settings.polling_enabled is True
        assert settings.poll_interval_seconds == 5.0
        assert settings.display_utc_offset_hours == 2.0
        assert settings.log_level == "DEBUG"
        assert service.store is build_default_store()
        assert service.store.display_tz == display_timezone(2)
        assert service.aggregator.display_tz == display_timezone(2)
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SMART_PLUG_POLL_INTERVAL_SECONDS", "-1")
    monkeypatch.setenv("SMART_PLUG_REQUEST_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("SMART_PLUG_SOURCE_UTC_OFFSET_HOURS", "99")
    monkeypatch.setenv("SMART_PLUG_ACCESS_KEY", "   ")
    monkeypatch.setenv("PORT", "70000")
    get_settings.cache_clear()

    try:
        settings = get_settings()

        assert settings.poll_interval_seconds == 10.0
        assert settings.request_timeout_seconds == 10.0
        assert settings.source_utc_offset_hours == 8.0
        assert settings.access_key is None
        assert settings.polling_enabled is False
        assert settings.server_port == 8000
    finally:
        get_settings.cache_clear()


def test_contextual_formatter_appends_extra_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["device_sn", "reason"])
    record = logging.LogRecord("services.poller", logging.WARNING, __file__, 1, "Skipping poll cycle", None, None)
    record.device_sn = "HW52"
    record.reason = None

    assert formatter.format(record) == "Skipping poll cycle | device_sn=HW52"
