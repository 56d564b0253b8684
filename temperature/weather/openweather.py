"""
OpenWeatherMap API source.
Fetches yesterday's hourly history for a coordinate and reduces it to one value.
"""

import asyncio
import aiohttp
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from .averager import average
from .cancellation import CancellationToken
from .errors import SourceError
from .models import Coordinate
from .source import yesterday

logger = logging.getLogger(__name__)


class OpenWeatherSource:
    """Source backed by the OpenWeatherMap One Call "timemachine" endpoint."""

    name = "openweather"
    BASE_URL = "https://api.openweathermap.org/data/2.5/onecall/timemachine"

    # The endpoint only keeps a few days of history
    MAX_HISTORY = timedelta(days=4)

    # Hours of the day used for the daily value
    DAY_HOURS = slice(3, 12)

    def __init__(
        self,
        api_key: str,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize OpenWeather source.

        Args:
            api_key: OpenWeatherMap API key
            timeout_seconds: Total timeout of a single HTTP request
            session: Optional shared aiohttp session
        """
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch(
        self,
        coordinate: Coordinate,
        when: datetime,
        cancel: CancellationToken
    ) -> float:
        """
        Fetch the average temperature for a coordinate on the day of `when`.

        Args:
            coordinate: Point to query
            when: Moment inside the requested day
            cancel: Token aborting the request when it fires

        Returns:
            Average temperature in Celsius
        """
        if datetime.now(when.tzinfo) - when > self.MAX_HISTORY:
            raise SourceError(coordinate, "requested date exceeds the history depth")

        data = await cancel.guard(self._request(coordinate, when))
        return self.extract_temperature(coordinate, data)

    async def _request(self, coordinate: Coordinate, when: datetime) -> Dict[str, Any]:
        session = await self._get_session()
        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "dt": int(when.timestamp()),
            "appid": self.api_key,
            "units": "metric",  # Celsius
        }

        try:
            async with session.get(self.BASE_URL, params=params, timeout=self.timeout) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(
                        f"OpenWeather API error: {response.status} - {error_text}"
                    )
                    raise SourceError(coordinate, f"HTTP {response.status}: {error_text}")
                return await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"OpenWeather request failed for {coordinate}: {e}")
            raise SourceError(coordinate, e) from e
        except asyncio.TimeoutError as e:
            logger.error(f"OpenWeather request timed out for {coordinate}")
            raise SourceError(coordinate, "request timed out") from e
        except ValueError as e:
            raise SourceError(coordinate, f"malformed payload: {e}") from e

    @classmethod
    def extract_temperature(cls, coordinate: Coordinate, data: Dict[str, Any]) -> float:
        """
        Reduce a timemachine payload to a single daily temperature.

        Uses hours 3..11 of the hourly series. A series that does not
        cover that window is rejected rather than averaged partially.
        """
        try:
            hourly = [float(item["temp"]) for item in data.get("hourly", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SourceError(coordinate, f"malformed payload: {e}") from e

        if len(hourly) < cls.DAY_HOURS.stop:
            raise SourceError(
                coordinate,
                f"payload has {len(hourly)} hourly values, need {cls.DAY_HOURS.stop}"
            )
        return average(hourly[cls.DAY_HOURS])

    async def check_connection(self) -> None:
        """
        Probe the API once so a bad key or outage shows up at startup.

        Raises:
            SourceError: If the probe request fails
        """
        await self.fetch(Coordinate(0.0, 0.0), yesterday(), CancellationToken())
        logger.info("OpenWeather connection check passed")
