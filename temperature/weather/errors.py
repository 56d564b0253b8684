"""
Error types raised by the temperature aggregation engine.
"""

from typing import Optional


class TemperatureError(Exception):
    """Base class for all errors of the temperature scrapper."""


class ConfigError(TemperatureError):
    """Configuration is missing or malformed."""


class EmptyInputError(TemperatureError, ValueError):
    """An average was requested for an empty sequence of values."""

    def __init__(self, message: str = "cannot average an empty sequence"):
        super().__init__(message)


class SourceError(TemperatureError):
    """
    A single coordinate fetch failed.

    `coordinate` is None when the failure could not be traced to a
    particular coordinate of the location.
    """

    def __init__(self, coordinate, cause):
        self.coordinate = coordinate
        self.cause = cause
        if coordinate is None:
            super().__init__(f"Source request failed: {cause}")
        else:
            super().__init__(f"Source request failed for {coordinate}: {cause}")


class OperationCancelledError(TemperatureError):
    """An operation observed cancellation of its token."""

    def __init__(self, reason: Optional[BaseException] = None):
        self.reason = reason
        message = "operation cancelled"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)


class AggregationError(TemperatureError):
    """A location could not be resolved because one of its fetches failed."""

    def __init__(self, location, cause: SourceError):
        self.location = location
        self.cause = cause
        super().__init__(f"Failed to resolve '{location.description}': {cause}")


class BatchTimeoutError(TemperatureError, TimeoutError):
    """The batch did not complete within its deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Batch did not complete within {timeout:g}s")
