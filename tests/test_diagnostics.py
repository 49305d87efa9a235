"""
Unit tests for sreach_lag.diagnostics and sreach_lag.exceptions.
"""

import logging

import pytest

from sreach_lag.diagnostics import HIGH_DIMENSION, SOLVER_INACCURATE, Diagnostics
from sreach_lag.exceptions import (
    GeometryError,
    InternalInconsistencyError,
    InvalidArgumentsError,
    ReachError,
)


class TestDiagnostics:
    """Tests for the advisory sink."""

    def test_records_in_order(self):
        diagnostics = Diagnostics()

        diagnostics.warn(SOLVER_INACCURATE, "first", direction_index=3)
        diagnostics.warn(HIGH_DIMENSION, "second")

        assert len(diagnostics) == 2
        assert diagnostics.codes() == [SOLVER_INACCURATE, HIGH_DIMENSION]
        assert diagnostics.advisories[0].context == {"direction_index": 3}

    def test_mirrors_to_logger(self, caplog):
        diagnostics = Diagnostics()

        with caplog.at_level(logging.WARNING, logger="sreach_lag.diagnostics"):
            diagnostics.warn(HIGH_DIMENSION, "large system", state_dim=6)

        assert "large system [state_dim=6]" in caplog.text

    def test_advisories_is_a_copy(self):
        diagnostics = Diagnostics()
        diagnostics.warn(HIGH_DIMENSION, "x")

        diagnostics.advisories.clear()

        assert len(diagnostics) == 1


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_builtin_bases(self):
        assert issubclass(InvalidArgumentsError, ValueError)
        assert issubclass(GeometryError, ValueError)
        assert issubclass(InternalInconsistencyError, RuntimeError)
        for cls in (InvalidArgumentsError, GeometryError, InternalInconsistencyError):
            assert issubclass(cls, ReachError)

    def test_context_rendering(self):
        err = InternalInconsistencyError("solver failed", direction_index=4)

        assert str(err) == "solver failed (direction 4)"

    def test_with_context_keeps_existing_fields(self):
        err = InternalInconsistencyError("solver failed", direction_index=4, time_step=1)

        err.with_context(time_step=7, realization_index=0)

        assert err.time_step == 1
        assert err.realization_index == 0
        assert str(err) == "solver failed (time step 1, realization 0, direction 4)"

    def test_raises_as_runtime_error(self):
        with pytest.raises(RuntimeError):
            raise InternalInconsistencyError("boom")
