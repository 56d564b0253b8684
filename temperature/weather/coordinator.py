"""
Batch coordinator: resolves every configured location concurrently and
turns the batch into a single all-or-nothing result.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .aggregator import LocationAggregator
from .cancellation import CancellationToken, drain
from .errors import (
    AggregationError,
    BatchTimeoutError,
    OperationCancelledError,
    SourceError,
    TemperatureError,
)
from .models import (
    BatchFailed,
    BatchResult,
    BatchState,
    BatchSucceeded,
    Location,
    TemperatureSample,
)
from .source import Source, yesterday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Expired:
    """Queue marker pushed when the batch token fires."""
    reason: Optional[BaseException]


class BatchCoordinator:
    """
    Runs one batch over a list of locations.

    All location tasks report into one completion queue. The first error,
    or expiry of the batch deadline, cancels the shared token and decides
    the outcome; samples collected so far are discarded.
    """

    def __init__(self, source: Source, cancel_grace: float = 1.0):
        """
        Args:
            source: Temperature source used for every coordinate
            cancel_grace: Seconds cancelled tasks get to stop on their own
        """
        self.aggregator = LocationAggregator(source, cancel_grace)
        self.cancel_grace = cancel_grace
        self.state: Optional[BatchState] = None

    async def run(
        self,
        locations: Iterable[Location],
        timeout: Optional[float] = None,
        when: Optional[datetime] = None
    ) -> BatchResult:
        """
        Resolve all locations.

        `state` is RUNNING while the batch is in flight and holds the
        terminal state of the last batch afterwards.

        Args:
            locations: Locations to resolve
            timeout: Deadline for the whole batch in seconds, None for no deadline
            when: Moment inside the requested day, yesterday by default

        Returns:
            BatchSucceeded with one sample per location, or BatchFailed
            with the first observed error
        """
        self.state = BatchState.RUNNING
        result: Optional[BatchResult] = None
        try:
            result = await self._run(list(locations), timeout, when or yesterday())
            return result
        finally:
            self.state = result.state if result is not None else BatchState.FAILED

    async def _run(
        self,
        locations: List[Location],
        timeout: Optional[float],
        when: datetime
    ) -> BatchResult:
        if not locations:
            return BatchSucceeded(samples=())

        reason = BatchTimeoutError(timeout) if timeout is not None else None
        scope = CancellationToken.with_deadline(timeout, reason)
        completions: "asyncio.Queue" = asyncio.Queue()
        scope.add_callback(lambda cause: completions.put_nowait(_Expired(cause)))

        logger.info(f"Starting batch for {len(locations)} locations")
        tasks = [
            asyncio.ensure_future(self._resolve(location, scope, when, completions))
            for location in locations
        ]

        samples: List[TemperatureSample] = []
        error: Optional[TemperatureError] = None
        try:
            while len(samples) < len(locations):
                item = await completions.get()
                if isinstance(item, TemperatureSample):
                    samples.append(item)
                    logger.info(
                        f"Received value: location={item.location.description}, "
                        f"temperature={item.value:.1f}"
                    )
                elif isinstance(item, _Expired):
                    error = item.reason
                    if not isinstance(error, TemperatureError):
                        error = OperationCancelledError(item.reason)
                    break
                else:
                    error = item
                    break
        finally:
            if len(samples) < len(locations):
                scope.cancel(error or OperationCancelledError())
            scope.close()
            await drain(tasks, self.cancel_grace)

        if error is not None:
            logger.error(f"Batch failed: {error}")
            return BatchFailed(error=error)

        logger.info(f"Batch completed: {len(samples)} locations resolved")
        return BatchSucceeded(samples=tuple(samples))

    async def _resolve(
        self,
        location: Location,
        scope: CancellationToken,
        when: datetime,
        completions: "asyncio.Queue"
    ) -> None:
        try:
            sample = await self.aggregator.resolve(location, scope, when)
        except (OperationCancelledError, asyncio.CancelledError) as e:
            if scope.cancelled:
                if isinstance(e, asyncio.CancelledError):
                    raise
                return
            # A cancellation nobody asked for is reported as a failure
            cause = e if isinstance(e, OperationCancelledError) else "location task cancelled"
            completions.put_nowait(AggregationError(location, SourceError(None, cause)))
            return
        except TemperatureError as e:
            completions.put_nowait(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error resolving '{location.description}'")
            completions.put_nowait(AggregationError(location, SourceError(None, e)))
            return
        completions.put_nowait(sample)


async def run_batch(
    source: Source,
    locations: Iterable[Location],
    timeout: Optional[float] = None,
    when: Optional[datetime] = None,
    cancel_grace: float = 1.0
) -> BatchResult:
    """Run one batch over `locations` with a fresh coordinator."""
    coordinator = BatchCoordinator(source, cancel_grace=cancel_grace)
    return await coordinator.run(locations, timeout=timeout, when=when)
