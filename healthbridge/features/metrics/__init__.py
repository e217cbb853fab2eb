"""
Metrics module.

Usage:
    from healthbridge.features.metrics import DailyMetric, DailyMetricRepository
    from healthbridge.features.metrics.service import ManualIngestService

The service is not re-exported here: it depends on the governance
writer, which itself imports this package's models.
"""

from .models import DailyMetric, ActiveHours
from .repository import GovernedRepository, DailyMetricRepository, ActiveHoursRepository
from .schemas import (
    DailyMetricsIngestRequest,
    ActiveHoursIngestRequest,
    DailyMetricResponse,
    ActiveHoursResponse,
)

__all__ = [
    # Models
    "DailyMetric",
    "ActiveHours",
    # Repositories
    "GovernedRepository",
    "DailyMetricRepository",
    "ActiveHoursRepository",
    # Schemas
    "DailyMetricsIngestRequest",
    "ActiveHoursIngestRequest",
    "DailyMetricResponse",
    "ActiveHoursResponse",
]
