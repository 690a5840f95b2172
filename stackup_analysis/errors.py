"""Error types raised by the stackup analysis engine."""

from __future__ import annotations


class StackupError(Exception):
    """Base class for every failure surfaced by the engine."""


class ValidationError(StackupError, ValueError):
    """Ill-formed input: empty stackup, NaN values, zero direction, etc."""


class NumericError(StackupError, ArithmeticError):
    """A distribution could not be constructed or evaluated."""


class AnalysisCancelled(StackupError):
    """A Monte Carlo run was interrupted by its caller.

    Partial statistics are never returned; the caller gets this instead.
    """

    def __init__(self, completed: int, requested: int) -> None:
        super().__init__(
            f"Monte Carlo run cancelled after {completed} of {requested} samples"
        )
        self.completed = completed
        self.requested = requested
