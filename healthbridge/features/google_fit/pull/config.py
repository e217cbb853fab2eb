"""
Google Fit pull configuration constants.
"""


class PullConfig:
    """Configuration for pull behavior."""

    # Provenance stamped on every pulled row
    SOURCE = "google_fit"
    CONFIDENCE = 90

    # Scheduled pulls fetch the previous local day (today is still open)
    SCHEDULED_DAYS_BACK = 1

    # Delay between owners in a scheduled batch (seconds)
    OWNER_DELAY_SECONDS = 0.5
