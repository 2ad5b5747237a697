"""Normalization of raw smart plug property snapshots into readings."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Union

from models.records import Reading, SwitchStatus
from storage.reading_store import ReadingStore

logger = logging.getLogger(__name__)

UPDATE_TIME_KEY = "2_1.updateTime"
SWITCH_STATUS_KEY = "2_1.switchSta"
COUNTRY_KEY = "2_1.country"
TOWN_KEY = "2_1.town"
VOLT_KEY = "2_1.volt"
CURRENT_KEY = "2_1.current"
WATTS_KEY = "2_1.watts"

# The plug reports power in tenths of a watt.
WATTS_SCALE = 10


class ReadingIngestor:
    """Turns one device property map into a stored ``Reading``.

    Vendor timestamps without an explicit offset are read in the source zone
    and converted once to the display zone. Nothing downstream shifts them
    again.
    """

    def __init__(
        self,
        store: ReadingStore,
        source_offset_hours: float = 8.0,
        display_offset_hours: float = 3.0,
    ) -> None:
        self.store = store
        self.source_tz = timezone(timedelta(hours=source_offset_hours))
        self.display_tz = timezone(timedelta(hours=display_offset_hours))

    def ingest(self, properties: Mapping[str, Any]) -> Reading:
        reading = self.normalize(properties)
        self.store.append(reading)
        logger.debug(
            "Stored reading at %s",
            reading.timestamp.isoformat(),
            extra={"reading_count": len(self.store)},
        )
        return reading

    def normalize(self, properties: Mapping[str, Any]) -> Reading:
        timestamp = self._parse_timestamp(_require(properties, UPDATE_TIME_KEY))
        return Reading(
            timestamp=timestamp,
            switch_status=_parse_switch_status(properties.get(SWITCH_STATUS_KEY)),
            country=_str_or_none(properties.get(COUNTRY_KEY)),
            town=_str_or_none(properties.get(TOWN_KEY)),
            volt=_parse_number(properties, VOLT_KEY),
            current=_parse_number(properties, CURRENT_KEY),
            watts=_parse_number(properties, WATTS_KEY) / WATTS_SCALE,
        )

    def _parse_timestamp(self, value: Any) -> datetime:
        if isinstance(value, datetime):
            parsed = value
        else:
            candidate = str(value).strip()
            if candidate.endswith("Z"):
                candidate = candidate[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(candidate)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid timestamp in property {UPDATE_TIME_KEY!r}: {value!r}"
                ) from exc

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self.source_tz)
        return parsed.astimezone(self.display_tz)


def _require(properties: Mapping[str, Any], key: str) -> Any:
    value = properties.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"Device snapshot is missing property {key!r}.")
    return value


def _parse_number(properties: Mapping[str, Any], key: str) -> float:
    value = _require(properties, key)
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value in property {key!r}: {value!r}")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value in property {key!r}: {value!r}") from exc
    if not math.isfinite(parsed):
        raise ValueError(f"Invalid numeric value in property {key!r}: {value!r}")
    return parsed


def _parse_switch_status(value: Any) -> Union[SwitchStatus, int, str, None]:
    if value is None:
        return None
    if isinstance(value, bool):
        return SwitchStatus.on if value else SwitchStatus.off
    if isinstance(value, int):
        if value == 1:
            return SwitchStatus.on
        if value == 0:
            return SwitchStatus.off
        return value
    candidate = str(value).strip().lower()
    if candidate in {"1", "on", "true"}:
        return SwitchStatus.on
    if candidate in {"0", "off", "false"}:
        return SwitchStatus.off
    return str(value)


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)
