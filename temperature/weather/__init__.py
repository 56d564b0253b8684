"""Temperature sources and the concurrent aggregation engine."""

from .averager import average
from .aggregator import LocationAggregator
from .cancellation import CancellationToken
from .coordinator import BatchCoordinator, run_batch
from .errors import (
    TemperatureError,
    ConfigError,
    EmptyInputError,
    SourceError,
    OperationCancelledError,
    AggregationError,
    BatchTimeoutError,
)
from .models import (
    Coordinate,
    Location,
    TemperatureSample,
    BatchState,
    BatchSucceeded,
    BatchFailed,
    BatchResult,
)
from .openweather import OpenWeatherSource
from .source import Source, FakeSource, yesterday

__all__ = [
    "average",
    "LocationAggregator",
    "CancellationToken",
    "BatchCoordinator",
    "run_batch",
    "TemperatureError",
    "ConfigError",
    "EmptyInputError",
    "SourceError",
    "OperationCancelledError",
    "AggregationError",
    "BatchTimeoutError",
    "Coordinate",
    "Location",
    "TemperatureSample",
    "BatchState",
    "BatchSucceeded",
    "BatchFailed",
    "BatchResult",
    "OpenWeatherSource",
    "Source",
    "FakeSource",
    "yesterday",
]
