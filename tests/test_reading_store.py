from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from models.records import Reading
from storage.reading_store import ReadingStore, build_default_store, display_timezone

NAIROBI = timezone(timedelta(hours=3))


def _reading(timestamp: datetime, watts: float = 10.0) -> Reading:
    return Reading(
        timestamp=timestamp,
        switch_status=None,
        country="KE",
        town="Nairobi",
        volt=230.0,
        current=0.1,
        watts=watts,
    )


def test_range_is_inclusive_on_both_ends() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    before = _reading(datetime(2024, 5, 31, 23, 59, tzinfo=NAIROBI))
    first_day = _reading(datetime(2024, 6, 1, 0, 0, tzinfo=NAIROBI))
    last_day = _reading(datetime(2024, 6, 3, 23, 59, tzinfo=NAIROBI))
    after = _reading(datetime(2024, 6, 4, 0, 0, tzinfo=NAIROBI))
    for reading in (before, first_day, last_day, after):
        store.append(reading)

    result = store.range(date(2024, 6, 1), date(2024, 6, 3))

    assert result == [first_day, last_day]


def test_range_uses_display_zone_calendar_date() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    # 22:30 UTC on 1 June is already 2 June in UTC+3.
    late_utc = _reading(datetime(2024, 6, 1, 22, 30, tzinfo=timezone.utc))
    store.append(late_utc)

    assert store.range(date(2024, 6, 1), date(2024, 6, 1)) == []
    assert store.range(date(2024, 6, 2), date(2024, 6, 2)) == [late_utc]


def test_range_preserves_append_order() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    later = _reading(datetime(2024, 6, 1, 12, 0, tzinfo=NAIROBI), watts=2.0)
    earlier = _reading(datetime(2024, 6, 1, 11, 0, tzinfo=NAIROBI), watts=1.0)
    store.append(later)
    store.append(earlier)

    assert store.range(date(2024, 6, 1), date(2024, 6, 1)) == [later, earlier]


def test_range_returns_snapshot_list() -> None:
    store = ReadingStore()
    store.append(_reading(datetime(2024, 6, 1, 9, 0, tzinfo=NAIROBI)))

    snapshot = store.range(date(2024, 6, 1), date(2024, 6, 1))
    store.append(_reading(datetime(2024, 6, 1, 9, 10, tzinfo=NAIROBI)))

    assert len(snapshot) == 1
    assert len(store) == 2


def test_latest_returns_most_recent_append() -> None:
    store = ReadingStore()
    assert store.latest() is None

    last = _reading(datetime(2024, 6, 1, 9, 10, tzinfo=NAIROBI))
    store.append(_reading(datetime(2024, 6, 1, 9, 0, tzinfo=NAIROBI)))
    store.append(last)

    assert store.latest() is last


def test_default_store_is_shared(monkeypatch) -> None:
    monkeypatch.setenv("SMART_PLUG_DISPLAY_UTC_OFFSET_HOURS", "3")
    from settings import get_settings

    get_settings.cache_clear()
    build_default_store.cache_clear()
    try:
        first = build_default_store()
        assert build_default_store() is first
        assert first.display_tz == display_timezone(3)
    finally:
        build_default_store.cache_clear()
        get_settings.cache_clear()
