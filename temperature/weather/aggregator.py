"""
Resolves one location into one temperature sample by querying
every coordinate of the location concurrently.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .averager import average
from .cancellation import CancellationToken, drain
from .errors import AggregationError, OperationCancelledError, SourceError
from .models import Coordinate, Location, TemperatureSample
from .source import Source, yesterday

logger = logging.getLogger(__name__)


class LocationAggregator:
    """
    Fans a location out to the source, one task per coordinate.

    The first failed coordinate fails the whole location: sibling
    fetches are cancelled and no partial average is ever returned.
    """

    def __init__(self, source: Source, cancel_grace: float = 1.0):
        """
        Args:
            source: Temperature source shared by all fetches
            cancel_grace: Seconds cancelled fetches get to stop on their own
        """
        self.source = source
        self.cancel_grace = cancel_grace

    async def resolve(
        self,
        location: Location,
        cancel: CancellationToken,
        when: Optional[datetime] = None
    ) -> TemperatureSample:
        """
        Resolve a location to its average temperature.

        Args:
            location: Location to resolve
            cancel: Token of the calling scope
            when: Moment inside the requested day, yesterday by default

        Returns:
            Sample holding the mean of all coordinate temperatures

        Raises:
            AggregationError: If any coordinate fetch failed
            OperationCancelledError: If `cancel` fired first
        """
        cancel.raise_if_cancelled()
        when = when or yesterday()
        scope = cancel.child()

        tasks = [
            asyncio.ensure_future(self._fetch(coordinate, when, scope))
            for coordinate in location.coordinates
        ]
        coordinates = dict(zip(tasks, location.coordinates))
        waiter = asyncio.ensure_future(cancel.wait())
        pending = set(tasks)

        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if waiter in done:
                    raise OperationCancelledError(cancel.reason)

                for task in done:
                    pending.discard(task)
                    if task.cancelled():
                        error = SourceError(coordinates[task], "fetch cancelled")
                    else:
                        error = task.exception()
                    if error is None:
                        continue
                    if isinstance(error, OperationCancelledError) and cancel.cancelled:
                        raise OperationCancelledError(cancel.reason)
                    if not isinstance(error, SourceError):
                        error = SourceError(coordinates[task], error)
                    logger.warning(
                        f"Location '{location.description}' failed: {error}"
                    )
                    raise AggregationError(location, error)
        finally:
            waiter.cancel()
            if pending:
                scope.cancel(OperationCancelledError())
            await drain(tasks, self.cancel_grace)

        value = average([task.result() for task in tasks])
        logger.debug(
            f"Location '{location.description}' resolved from "
            f"{len(tasks)} coordinates: {value:.2f}"
        )
        return TemperatureSample(location=location, value=value)

    async def _fetch(
        self,
        coordinate: Coordinate,
        when: datetime,
        scope: CancellationToken
    ) -> float:
        try:
            return await self.source.fetch(coordinate, when, scope)
        except SourceError:
            raise
        except OperationCancelledError as e:
            # Only a fired token makes cancellation legitimate
            if scope.cancelled:
                raise
            raise SourceError(coordinate, e) from e
        except asyncio.CancelledError:
            if scope.cancelled:
                raise
            raise SourceError(coordinate, "fetch cancelled")
        except Exception as e:
            raise SourceError(coordinate, e) from e
