"""
Shared fixtures and scripted sources for the test suite.
"""

import asyncio
from typing import Any, Dict, List, NamedTuple

import pytest

from temperature.weather import (
    CancellationToken,
    Coordinate,
    Location,
    OperationCancelledError,
)

# Outcome that never completes on its own; it only ends when the token fires
BLOCK = object()


class Delayed(NamedTuple):
    """Outcome produced after `seconds` of (cancellable) waiting."""
    seconds: float
    outcome: Any


class ScriptedSource:
    """
    Source returning a scripted outcome per coordinate.

    An outcome is a float, an exception instance to raise, BLOCK, or
    Delayed(seconds, outcome).
    """

    name = "scripted"

    def __init__(self, script: Dict[Coordinate, Any]):
        self.script = script
        self.calls: List[Coordinate] = []
        self.cancelled: List[Coordinate] = []

    async def fetch(self, coordinate: Coordinate, when, cancel: CancellationToken) -> float:
        self.calls.append(coordinate)
        outcome = self.script[coordinate]

        if isinstance(outcome, Delayed):
            try:
                await cancel.guard(asyncio.sleep(outcome.seconds))
            except OperationCancelledError:
                self.cancelled.append(coordinate)
                raise
            outcome = outcome.outcome

        if outcome is BLOCK:
            await cancel.wait()
            self.cancelled.append(coordinate)
            raise OperationCancelledError(cancel.reason)

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class StubbornSource:
    """Source that ignores its token and sleeps for an hour."""

    name = "stubborn"

    def __init__(self):
        self.started = 0

    async def fetch(self, coordinate, when, cancel) -> float:
        self.started += 1
        await asyncio.sleep(3600)
        return 0.0


def point(n: int) -> Coordinate:
    return Coordinate(latitude=50.0 + n, longitude=30.0 + n)


@pytest.fixture
def north():
    return Location("North", (point(1), point(2), point(3)))


@pytest.fixture
def south():
    return Location("South", (point(4), point(5)))
