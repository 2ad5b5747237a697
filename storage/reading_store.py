from __future__ import annotations

from datetime import date, timedelta, timezone, tzinfo
from functools import lru_cache
from threading import Lock
from typing import List, Optional

from models.records import Reading
from settings import get_settings


def display_timezone(offset_hours: float) -> timezone:
    return timezone(timedelta(hours=offset_hours))


class ReadingStore:
    """Append-only, process-lifetime buffer of smart plug readings."""

    def __init__(self, display_tz: Optional[tzinfo] = None) -> None:
        self.display_tz = display_tz
        self._readings: List[Reading] = []
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def append(self, reading: Reading) -> None:
        with self._lock:
            self._readings.append(reading)

    def range(self, start_date: date, end_date: date) -> list[Reading]:
        """Return readings whose display-zone calendar date lies in [start_date, end_date]."""

        with self._lock:
            snapshot = list(self._readings)
        return [
            reading
            for reading in snapshot
            if start_date <= self._local_date(reading) <= end_date
        ]

    def latest(self) -> Optional[Reading]:
        with self._lock:
            if not self._readings:
                return None
            return self._readings[-1]

    def _local_date(self, reading: Reading) -> date:
        timestamp = reading.timestamp
        if self.display_tz is not None and timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(self.display_tz)
        return timestamp.date()


@lru_cache
def build_default_store() -> ReadingStore:
    settings = get_settings()
    return ReadingStore(display_tz=display_timezone(settings.display_utc_offset_hours))
