"""
Exception types raised by sreach_lag.

The hierarchy keeps the builtin base classes so callers that only catch
``ValueError``/``RuntimeError`` keep working.
"""

from __future__ import annotations

from typing import Optional


class ReachError(Exception):
    """Base class for all sreach_lag errors."""


class InvalidArgumentsError(ReachError, ValueError):
    """Bad user input: unknown method, dimension mismatch, probability out of range."""


class GeometryError(ReachError, ValueError):
    """Representation conversion failed (degenerate, unbounded or empty input)."""


class InternalInconsistencyError(ReachError, RuntimeError):
    """
    A guaranteed-feasible subproblem was reported infeasible/unbounded/failed.

    The recursion is aborted; no partial tube is returned. Context is attached
    while the error propagates so the failing solve can be reproduced.
    """

    def __init__(
        self,
        message: str,
        time_step: Optional[int] = None,
        direction_index: Optional[int] = None,
        realization_index: Optional[int] = None,
    ):
        self.base_message = message
        self.time_step = time_step
        self.direction_index = direction_index
        self.realization_index = realization_index
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.time_step is not None:
            context.append(f"time step {self.time_step}")
        if self.realization_index is not None:
            context.append(f"realization {self.realization_index}")
        if self.direction_index is not None:
            context.append(f"direction {self.direction_index}")
        if not context:
            return self.base_message
        return f"{self.base_message} ({', '.join(context)})"

    def with_context(self, **context) -> "InternalInconsistencyError":
        """Fill in missing context fields and refresh the message."""
        for key, value in context.items():
            if getattr(self, key) is None:
                setattr(self, key, value)
        self.args = (self._render(),)
        return self
