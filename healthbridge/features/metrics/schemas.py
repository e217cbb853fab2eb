"""
Metric schemas.

Manual ingestion requests use the camelCase field names of the public API;
responses are serialized from the ORM rows in snake_case.
"""

import math
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthbridge.shared.clock import parse_iso_date
from healthbridge.shared.numbers import round_half_up

SOURCE_MAX_LENGTH = 64
DEFAULT_SOURCE = "unknown"
DEFAULT_CONFIDENCE = 100


def _number(value: Any, field_name: str) -> float:
    """Accept JSON numbers only: no bools, no strings, no NaN/Infinity."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    if not math.isfinite(value):
        raise ValueError(f"{field_name} must be finite")
    return float(value)


def _non_negative(value: Any, field_name: str) -> float:
    number = _number(value, field_name)
    if number < 0:
        raise ValueError(f"{field_name} must be non-negative")
    return number


def normalize_source(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return DEFAULT_SOURCE
    return str(value)[:SOURCE_MAX_LENGTH]


def normalize_confidence(value: Any) -> int:
    """Floor and clamp to 0-100; anything but a finite number means 100."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return DEFAULT_CONFIDENCE
    return max(0, min(100, math.floor(value)))


class _ManualIngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = DEFAULT_SOURCE
    confidence: int = DEFAULT_CONFIDENCE

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError("source must be a string")
        return normalize_source(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        return normalize_confidence(v)


class DailyMetricsIngestRequest(_ManualIngestRequest):
    """
    Manual daily metrics.

    Every metric is optional; present values must be non-negative finite
    numbers and are rounded half up to whole units.
    """

    metric_date: date = Field(alias="metricDate")
    steps: Optional[int] = None
    calories_kcal: Optional[int] = Field(default=None, alias="caloriesKcal")
    avg_hr_bpm: Optional[int] = Field(default=None, alias="avgHrBpm")
    sleep_minutes: Optional[int] = Field(default=None, alias="sleepMinutes")
    gym_minutes: Optional[int] = Field(default=None, alias="gymMinutes")
    badminton_minutes: Optional[int] = Field(default=None, alias="badmintonMinutes")
    swim_minutes: Optional[int] = Field(default=None, alias="swimMinutes")

    @field_validator("metric_date", mode="before")
    @classmethod
    def _metric_date(cls, v):
        if isinstance(v, date):
            return v
        return parse_iso_date(v, "metricDate")

    @field_validator(
        "steps",
        "calories_kcal",
        "avg_hr_bpm",
        "sleep_minutes",
        "gym_minutes",
        "badminton_minutes",
        "swim_minutes",
        mode="before",
    )
    @classmethod
    def _metric_value(cls, v, info):
        if v is None:
            return None
        return round_half_up(_non_negative(v, info.field_name))

    def metric_values(self) -> dict[str, Optional[int]]:
        """Metric columns as stored (None for omitted fields)."""
        return self.model_dump(
            include={
                "steps",
                "calories_kcal",
                "avg_hr_bpm",
                "sleep_minutes",
                "gym_minutes",
                "badminton_minutes",
                "swim_minutes",
            }
        )


class ActiveHoursIngestRequest(_ManualIngestRequest):
    """Manual active minutes for one day; minutes are floored."""

    active_date: date = Field(alias="activeDate")
    minutes_active: int = Field(alias="minutesActive")

    @field_validator("active_date", mode="before")
    @classmethod
    def _active_date(cls, v):
        if isinstance(v, date):
            return v
        return parse_iso_date(v, "activeDate")

    @field_validator("minutes_active", mode="before")
    @classmethod
    def _minutes(cls, v):
        return math.floor(_non_negative(v, "minutesActive"))


class DailyMetricResponse(BaseModel):
    """Stored daily metric row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    metric_date: date
    steps: Optional[int]
    calories_kcal: Optional[int]
    avg_hr_bpm: Optional[int]
    sleep_minutes: Optional[int]
    gym_minutes: Optional[int]
    badminton_minutes: Optional[int]
    swim_minutes: Optional[int]
    source: str
    confidence: int
    computed_at: datetime


class ActiveHoursResponse(BaseModel):
    """Stored active hours row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    active_date: date
    minutes_active: int
    source: str
    confidence: int
    computed_at: datetime
