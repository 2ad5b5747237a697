"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.records import Reading, SwitchStatus
from services.aggregator import BucketSummary


class ReadingOut(BaseModel):
    """One raw smart plug sample as exposed over HTTP."""

    model_config = ConfigDict(populate_by_name=True)

    update_time: datetime = Field(..., alias="updateTime")
    switch_status: Union[SwitchStatus, int, str, None] = Field(default=None, alias="switchStatus")
    country: Optional[str] = None
    town: Optional[str] = None
    volt: float
    current: float
    watts: float = Field(..., description="Instantaneous power in watts.")

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            update_time=reading.timestamp,
            switch_status=reading.switch_status,
            country=reading.country,
            town=reading.town,
            volt=reading.volt,
            current=reading.current,
            watts=reading.watts,
        )


class BucketSummaryOut(BaseModel):
    """Aggregate metrics for one time bucket."""

    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., ge=0)
    time: str = Field(..., description="Bucket label in the display time zone.")
    volt: float
    current: float
    watts: float
    watthours: float = Field(..., description="Energy integrated over the bucket.")
    max_watts: float = Field(..., alias="maxWatts")
    min_watts: float = Field(..., alias="minWatts")
    max_volt: float = Field(..., alias="maxVolt")
    min_volt: float = Field(..., alias="minVolt")
    max_current: float = Field(..., alias="maxCurrent")
    min_current: float = Field(..., alias="minCurrent")
    count: int = Field(..., ge=1)
    duration_in_seconds: float = Field(..., alias="durationInSeconds")
    current_time: datetime = Field(..., alias="currentTime")

    @classmethod
    def from_summary(cls, summary: BucketSummary) -> "BucketSummaryOut":
        return cls(
            index=summary.index,
            time=summary.time,
            volt=summary.volt,
            current=summary.current,
            watts=summary.watts,
            watthours=summary.watthours,
            max_watts=summary.max_watts,
            min_watts=summary.min_watts,
            max_volt=summary.max_volt,
            min_volt=summary.min_volt,
            max_current=summary.max_current,
            min_current=summary.min_current,
            count=summary.count,
            duration_in_seconds=summary.duration_in_seconds,
            current_time=summary.current_time,
        )


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    readings: int = Field(..., ge=0, description="Readings buffered since start-up.")
    polling: bool
