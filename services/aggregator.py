"""Time-bucketed aggregation of smart plug readings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Dict, Iterable, List, Optional

from models.records import Reading


class Granularity(str, Enum):
    """Bucket sizes supported by the aggregation engine."""

    minute = "minute"
    hour = "hour"
    day = "day"
    month = "month"
    year = "year"


SUPPORTED_GRANULARITIES = tuple(item.value for item in Granularity)


class UnsupportedGranularityError(ValueError):
    """Raised when a caller asks for a bucket size the engine does not know."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Unsupported aggregation type {value!r}. "
            f"Use one of: {', '.join(SUPPORTED_GRANULARITIES)}"
        )


class AggregationError(RuntimeError):
    """Raised when accumulated bucket state is internally inconsistent."""


def parse_granularity(value: str | Granularity) -> Granularity:
    if isinstance(value, Granularity):
        return value
    try:
        return Granularity(value)
    except ValueError as exc:
        raise UnsupportedGranularityError(value) from exc


def bucket_key(timestamp: datetime, granularity: Granularity) -> str:
    """Truncate ``timestamp`` to ``granularity`` and format it as a bucket label."""

    year, month, day = timestamp.year, timestamp.month, timestamp.day
    if granularity is Granularity.minute:
        return f"{year}-{month}-{day} {timestamp.hour}:{timestamp.minute:02d}"
    if granularity is Granularity.hour:
        return f"{year}-{month}-{day} {timestamp.hour}"
    if granularity is Granularity.day:
        return f"{year}-{month}-{day}"
    if granularity is Granularity.month:
        return f"{year}-{month}"
    if granularity is Granularity.year:
        return f"{year}"
    raise UnsupportedGranularityError(str(granularity))


@dataclass
class BucketSummary:
    """Computed statistics for one aggregation window."""

    index: int
    time: str
    volt: float
    current: float
    watts: float
    watthours: float
    max_watts: float
    min_watts: float
    max_volt: float
    min_volt: float
    max_current: float
    min_current: float
    count: int
    duration_in_seconds: float
    current_time: datetime


@dataclass
class _BucketState:
    index: int
    current_time: datetime
    sum_watts: float = 0.0
    sum_volt: float = 0.0
    sum_current: float = 0.0
    count: int = 0
    max_watts: float = -math.inf
    min_watts: float = math.inf
    max_volt: float = -math.inf
    min_volt: float = math.inf
    max_current: float = -math.inf
    min_current: float = math.inf
    energy_watthours: float = 0.0
    duration_seconds: float = 0.0

    def fold(self, reading: Reading, elapsed_seconds: float) -> None:
        self.sum_watts += reading.watts
        self.sum_volt += reading.volt
        self.sum_current += reading.current
        self.max_watts = max(self.max_watts, reading.watts)
        self.min_watts = min(self.min_watts, reading.watts)
        self.max_volt = max(self.max_volt, reading.volt)
        self.min_volt = min(self.min_volt, reading.volt)
        self.max_current = max(self.max_current, reading.current)
        self.min_current = min(self.min_current, reading.current)
        self.count += 1
        self.energy_watthours += reading.watts * elapsed_seconds / 3600
        self.duration_seconds += elapsed_seconds

    def summarize(self, key: str) -> BucketSummary:
        if self.count == 0:
            raise AggregationError(f"Bucket {key!r} was created without any readings.")
        return BucketSummary(
            index=self.index,
            time=key,
            volt=self.sum_volt / self.count,
            current=self.sum_current / self.count,
            watts=self.sum_watts / self.count,
            watthours=self.energy_watthours,
            max_watts=self.max_watts,
            min_watts=self.min_watts,
            max_volt=self.max_volt,
            min_volt=self.min_volt,
            max_current=self.max_current,
            min_current=self.min_current,
            count=self.count,
            duration_in_seconds=self.duration_seconds,
            current_time=self.current_time,
        )


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation.

    The first reading of the sequence only seeds the elapsed-time pointer:
    every later reading is folded into its bucket together with the energy
    drawn since its predecessor, whichever bucket that predecessor fell in.
    """

    def __init__(self, display_tz: Optional[tzinfo] = None) -> None:
        self.display_tz = display_tz

    def aggregate(
        self,
        readings: Iterable[Reading],
        granularity: str | Granularity,
    ) -> List[BucketSummary]:
        period = parse_granularity(granularity)
        ordered = sorted(readings, key=lambda reading: reading.timestamp)

        buckets: Dict[str, _BucketState] = {}
        previous: Optional[Reading] = None

        for reading in ordered:
            if previous is None:
                previous = reading
                continue

            local_time = self._localize(reading.timestamp)
            key = bucket_key(local_time, period)
            state = buckets.get(key)
            if state is None:
                state = _BucketState(index=len(buckets), current_time=local_time)
                buckets[key] = state

            elapsed = (reading.timestamp - previous.timestamp).total_seconds()
            state.fold(reading, elapsed)
            previous = reading

        # dicts keep insertion order, which is index order
        return [state.summarize(key) for key, state in buckets.items()]

    def _localize(self, timestamp: datetime) -> datetime:
        if self.display_tz is not None and timestamp.tzinfo is not None:
            return timestamp.astimezone(self.display_tz)
        return timestamp
