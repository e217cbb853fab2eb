"""
Google Fit API client.

Only the dataset aggregation endpoint is used: one request returns one
bucket covering a whole local day for the four tracked data types.

Data Policy:
- Only daily totals are persisted
- Raw samples are normalized in memory and discarded
"""

import logging
from typing import Optional

import httpx

from healthbridge.config import Settings
from .oauth import AggregateFailedError

logger = logging.getLogger(__name__)


AGGREGATED_DATA_TYPES = [
    "com.google.step_count.delta",
    "com.google.calories.expended",
    "com.google.heart_rate.bpm",
    "com.google.sleep.segment",
]


class GoogleFitClient:
    """
    Async client for the Google Fit REST API.

    Usage:
        client = GoogleFitClient(settings)
        payload = await client.aggregate(access_token, start_ms, end_ms)
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.dataset_url = settings.google_fit_dataset_url
        self._transport = transport

    async def aggregate(self, access_token: str, start_millis: int, end_millis: int) -> dict:
        """
        Aggregate the tracked data types into a single bucket.

        Args:
            access_token: Valid (non-expired) access token
            start_millis: Bucket start, epoch ms (inclusive)
            end_millis: Bucket end, epoch ms (exclusive)

        Returns:
            Raw provider payload ({"bucket": [...]})

        Raises:
            AggregateFailedError: Non-2xx response; detail holds the body
        """
        body = {
            "aggregateBy": [{"dataTypeName": name} for name in AGGREGATED_DATA_TYPES],
            "bucketByTime": {"durationMillis": end_millis - start_millis},
            "startTimeMillis": start_millis,
            "endTimeMillis": end_millis,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.dataset_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=body,
                )
        except httpx.HTTPError as e:
            logger.error(f"Google Fit aggregate unreachable: {e}")
            raise AggregateFailedError(detail=str(e))

        if not response.is_success:
            logger.error(f"Google Fit aggregate failed: {response.status_code}")
            raise AggregateFailedError(detail=response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Google Fit aggregate returned an unreadable body: {e}")
            raise AggregateFailedError(detail=str(e))
