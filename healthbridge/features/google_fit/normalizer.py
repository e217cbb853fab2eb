"""
Google Fit aggregate -> canonical daily totals.

Provider payload shape (abridged):

    {"bucket": [{"dataset": [
        {"dataSourceId": "derived:com.google.step_count.delta:...",
         "point": [{"value": [{"intVal": 1200}]}, ...]},
        {"dataSourceId": "derived:com.google.sleep.segment:...",
         "point": [{"startTimeNanos": "...", "endTimeNanos": "...", "value": [...]}]},
    ]}]}

Malformed or partial data degrades to zero instead of aborting the pull:
negative, non-finite and non-numeric samples are skipped.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from healthbridge.shared.numbers import round_half_up

NANOS_PER_MINUTE = 60 * 1_000_000_000


@dataclass(frozen=True)
class DailyTotals:
    """Canonical daily metric shape."""

    steps: int = 0
    calories_kcal: int = 0
    avg_hr_bpm: int = 0
    sleep_minutes: int = 0


def _finite(value: Any) -> Optional[float]:
    """Parse a sample into a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _first_value(point: dict, *keys: str) -> Optional[float]:
    """First present key of point.value[0] as a finite number."""
    values = point.get("value") if isinstance(point, dict) else None
    if not isinstance(values, list) or not values or not isinstance(values[0], dict):
        return None
    for key in keys:
        if values[0].get(key) is not None:
            return _finite(values[0][key])
    return None


def _data_type(dataset: dict) -> str:
    source_id = dataset.get("dataSourceId")
    if source_id:
        return str(source_id)
    data_source = dataset.get("dataSource") or {}
    return str(((data_source.get("dataType") or {}).get("name")) or "")


def _datasets(payload: Any) -> Iterable[dict]:
    buckets = payload.get("bucket") if isinstance(payload, dict) else None
    for bucket in buckets if isinstance(buckets, list) else []:
        for dataset in (bucket or {}).get("dataset") or []:
            if isinstance(dataset, dict):
                yield dataset


def _points(dataset: dict) -> list:
    points = dataset.get("point")
    return points if isinstance(points, list) else []


def _clamp(value: float) -> int:
    return max(0, round_half_up(value))


def normalize(payload: Any) -> DailyTotals:
    """
    Convert a dataset:aggregate response into DailyTotals.

    - steps: sum of intVal (fpVal fallback) of "step_count" points
    - calories: sum of fpVal of "calories.expended" points
    - heart rate: mean of strictly positive fpVal of "heart_rate" points
    - sleep: sum of (end - start) of "sleep.segment" points, ns -> minutes
    """
    steps = 0.0
    calories = 0.0
    hr_sum = 0.0
    hr_count = 0
    sleep_minutes = 0.0

    for dataset in _datasets(payload):
        data_type = _data_type(dataset)
        points = _points(dataset)

        if "step_count" in data_type:
            for point in points:
                value = _first_value(point, "intVal", "fpVal")
                if value is not None and value >= 0:
                    steps += value

        elif "calories.expended" in data_type:
            for point in points:
                value = _first_value(point, "fpVal")
                if value is not None and value >= 0:
                    calories += value

        elif "heart_rate" in data_type:
            for point in points:
                value = _first_value(point, "fpVal")
                # zero/negative readings are sensor noise
                if value is not None and value > 0:
                    hr_sum += value
                    hr_count += 1

        elif "sleep.segment" in data_type:
            for point in points:
                if not isinstance(point, dict):
                    continue
                start_ns = _finite(point.get("startTimeNanos"))
                end_ns = _finite(point.get("endTimeNanos"))
                if start_ns is not None and end_ns is not None and end_ns > start_ns:
                    sleep_minutes += (end_ns - start_ns) / NANOS_PER_MINUTE

    avg_hr = hr_sum / hr_count if hr_count else 0.0

    return DailyTotals(
        steps=_clamp(steps),
        calories_kcal=_clamp(calories),
        avg_hr_bpm=_clamp(avg_hr),
        sleep_minutes=_clamp(sleep_minutes),
    )
