"""
Value types for the temperature aggregation engine.
These dataclasses are immutable; the engine only reads locations
and stamps results with their description.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from .errors import ConfigError, TemperatureError


@dataclass(frozen=True)
class Coordinate:
    """
    A latitude/longitude pair used for a single source query.

    Attributes:
        latitude: Geographic latitude in degrees
            Example: 55.7512
        longitude: Geographic longitude in degrees
            Example: 37.6184
    """
    latitude: float
    longitude: float

    def __str__(self) -> str:
        return f"({self.latitude:.4f}, {self.longitude:.4f})"


@dataclass(frozen=True)
class Location:
    """
    A named place with one or more sampling coordinates.

    Attributes:
        description: Human-readable name, used as identity in reports
            Example: "Филиал Север"
        coordinates: Ordered, non-empty sequence of sampling points
    """
    description: str
    coordinates: Tuple[Coordinate, ...]

    def __post_init__(self):
        coordinates = tuple(self.coordinates)
        if not coordinates:
            raise ConfigError(f"Location '{self.description}' has no coordinates")
        object.__setattr__(self, "coordinates", coordinates)


@dataclass(frozen=True)
class TemperatureSample:
    """Average temperature computed for one location."""
    location: Location
    value: float


class BatchState(str, Enum):
    """Lifecycle of a single batch run."""
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class BatchSucceeded:
    """Every location resolved; one sample per location, in no particular order."""
    samples: Tuple[TemperatureSample, ...]

    ok = True
    state = BatchState.SUCCEEDED

    def unwrap(self) -> Tuple[TemperatureSample, ...]:
        return self.samples

    def as_pairs(self) -> Tuple[Tuple[str, float], ...]:
        """Return (description, value) pairs for downstream consumers."""
        return tuple((s.location.description, s.value) for s in self.samples)


@dataclass(frozen=True)
class BatchFailed:
    """The batch failed; all partial samples were discarded."""
    error: TemperatureError

    ok = False

    @property
    def state(self) -> BatchState:
        if isinstance(self.error, TimeoutError):
            return BatchState.TIMED_OUT
        return BatchState.FAILED

    def unwrap(self) -> Tuple[TemperatureSample, ...]:
        raise self.error


BatchResult = Union[BatchSucceeded, BatchFailed]
