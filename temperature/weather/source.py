"""
Temperature source contract and an offline implementation.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Optional, Protocol

from .cancellation import CancellationToken
from .errors import SourceError
from .models import Coordinate

logger = logging.getLogger(__name__)


def yesterday(now: Optional[datetime] = None) -> datetime:
    """Return the same wall-clock time one day before `now`."""
    now = now or datetime.now()
    return now - timedelta(days=1)


class Source(Protocol):
    """
    A data source returning one scalar temperature per request.

    Implementations must be safe to call concurrently for distinct
    coordinates, must not retry internally, and must return promptly
    with OperationCancelledError once `cancel` fires.
    """

    name: str

    async def fetch(
        self,
        coordinate: Coordinate,
        when: datetime,
        cancel: CancellationToken
    ) -> float:
        """
        Fetch the average temperature for `coordinate` on the day of `when`.

        Raises:
            SourceError: On network failure, non-success response or bad payload
            OperationCancelledError: If `cancel` fires before completion
        """
        ...


class FakeSource:
    """
    Offline source producing random temperatures.

    Used for dry runs without an OpenWeather key; fails with the
    configured probability so the failure path can be observed too.
    """

    name = "fake"

    def __init__(
        self,
        failure_rate: float = 0.0,
        delay_seconds: float = 0.0,
        rng: Optional[random.Random] = None
    ):
        self.failure_rate = failure_rate
        self.delay_seconds = delay_seconds
        self._rng = rng or random.Random()

    async def fetch(
        self,
        coordinate: Coordinate,
        when: datetime,
        cancel: CancellationToken
    ) -> float:
        if self.delay_seconds:
            await cancel.guard(asyncio.sleep(self.delay_seconds))
        cancel.raise_if_cancelled()

        if self._rng.random() < self.failure_rate:
            raise SourceError(coordinate, "simulated failure")

        value = round(self._rng.uniform(-30.0, 35.0), 1)
        logger.debug(f"Fake temperature for {coordinate} on {when:%Y-%m-%d}: {value}")
        return value
