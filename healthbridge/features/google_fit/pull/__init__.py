"""
Google Fit pull module.

Components:
- DailyMetricsPullService: on-demand pull of one local day
- BackgroundPullRunner: scheduled pulls of the previous day
"""

from .config import PullConfig
from .service import DailyMetricsPullService, build_pull_service
from .background import BackgroundPullRunner

__all__ = [
    "PullConfig",
    "DailyMetricsPullService",
    "build_pull_service",
    "BackgroundPullRunner",
]
