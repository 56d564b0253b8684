"""Arithmetic mean used to reduce per-coordinate temperatures."""

from typing import Sequence

from .errors import EmptyInputError


def average(values: Sequence[float]) -> float:
    """
    Return the arithmetic mean of `values`.

    NaN and infinities propagate as IEEE-754 arithmetic dictates.

    Raises:
        EmptyInputError: If `values` is empty
    """
    if len(values) == 0:
        raise EmptyInputError()
    return sum(values) / len(values)
