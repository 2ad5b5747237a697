"""Parameter validation and dispatch for smart plug range queries."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from enum import Enum
from functools import lru_cache
from typing import List, Optional, Union

from models.records import Reading
from services.aggregator import (
    SUPPORTED_GRANULARITIES,
    Aggregator,
    BucketSummary,
    Granularity,
)
from settings import get_settings
from storage.reading_store import ReadingStore, build_default_store, display_timezone

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DataType(str, Enum):
    raw = "rawData"
    aggregated = "aggregated"


# Earlier clients requested raw readings as ``deviceData``.
_DATA_TYPE_ALIASES = {"deviceData": DataType.raw}


class QueryValidationError(ValueError):
    """Raised when query parameters are missing or malformed."""


class UnsupportedAggregationError(QueryValidationError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Unsupported aggregationType {value!r}. "
            f"Use one of: {', '.join(SUPPORTED_GRANULARITIES)}"
        )


QueryResult = Union[List[Reading], List[BucketSummary]]


class QueryService:
    """Validates query parameters and answers them from the reading store."""

    def __init__(self, store: ReadingStore, aggregator: Aggregator) -> None:
        self.store = store
        self.aggregator = aggregator

    def query(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        data_type: Optional[str],
        aggregation_type: Optional[str] = None,
    ) -> QueryResult:
        if not start_date or not end_date:
            raise QueryValidationError("Both startDate and endDate are required")
        start = _parse_date("startDate", start_date)
        end = _parse_date("endDate", end_date)
        kind = _parse_data_type(data_type)

        if kind is DataType.raw:
            return self.raw_readings(start, end)

        granularity = _parse_aggregation_type(aggregation_type)
        return self.aggregate(start, end, granularity)

    def raw_readings(self, start: date, end: date) -> List[Reading]:
        readings = self.store.range(start, end)
        logger.debug(
            "Answered raw query",
            extra={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "reading_count": len(readings),
            },
        )
        return readings

    def aggregate(self, start: date, end: date, granularity: Granularity) -> List[BucketSummary]:
        readings = self.store.range(start, end)
        buckets = self.aggregator.aggregate(readings, granularity)
        logger.debug(
            "Answered aggregated query",
            extra={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "granularity": granularity.value,
                "reading_count": len(readings),
                "bucket_count": len(buckets),
            },
        )
        return buckets


def _parse_date(name: str, value: str) -> date:
    candidate = value.strip()
    if not _DATE_PATTERN.match(candidate):
        raise QueryValidationError(f"{name} must use the YYYY-MM-DD format, got {value!r}")
    try:
        return datetime.strptime(candidate, "%Y-%m-%d").date()
    except ValueError as exc:
        raise QueryValidationError(f"{name} is not a valid date: {value!r}") from exc


def _parse_data_type(value: Optional[str]) -> DataType:
    if not value:
        raise QueryValidationError("dataType is required. Use 'rawData' or 'aggregated'")
    if value in _DATA_TYPE_ALIASES:
        return _DATA_TYPE_ALIASES[value]
    try:
        return DataType(value)
    except ValueError as exc:
        raise QueryValidationError(
            f"Invalid dataType {value!r}. Use 'rawData' or 'aggregated'"
        ) from exc


def _parse_aggregation_type(value: Optional[str]) -> Granularity:
    if not value:
        raise QueryValidationError(
            "aggregationType is required when dataType is 'aggregated'. "
            f"Use one of: {', '.join(SUPPORTED_GRANULARITIES)}"
        )
    try:
        return Granularity(value)
    except ValueError as exc:
        raise UnsupportedAggregationError(value) from exc


@lru_cache
def build_default_query_service() -> QueryService:
    """Factory that wires the query service to the shared reading store."""
    settings = get_settings()
    aggregator = Aggregator(display_tz=display_timezone(settings.display_utc_offset_hours))
    return QueryService(store=build_default_store(), aggregator=aggregator)
