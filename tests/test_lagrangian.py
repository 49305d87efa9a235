"""
Tests for the sreach_set_lag driver.
"""

import numpy as np
import pytest

from sreach_lag.diagnostics import SOLVER_INACCURATE
from sreach_lag.dynamics import GaussianDisturbance, LtiSystem
from sreach_lag.exceptions import InternalInconsistencyError, InvalidArgumentsError
from sreach_lag.geometry import ConvexSet, Ellipsoid, Tube
from sreach_lag.reachability import LagrangianOptions, sreach_set_lag
from sreach_lag.solvers import ScipyBackend


def _options(method, **kwargs):
    kwargs.setdefault("ray_solver", ScipyBackend())
    return LagrangianOptions(method=method, **kwargs)


class TestLagrangianOptions:
    """Tests for option validation."""

    def test_defaults(self):
        options = LagrangianOptions()

        assert options.method == "lag-under"
        assert options.bound_set_method == "ellipsoid"
        assert options.n_directions == 32

    def test_unknown_method(self):
        with pytest.raises(InvalidArgumentsError):
            LagrangianOptions(method="genzps-open")

    def test_unknown_bound_set_method(self):
        with pytest.raises(InvalidArgumentsError):
            LagrangianOptions(bound_set_method="polytope")

    def test_too_few_directions(self):
        with pytest.raises(InvalidArgumentsError):
            LagrangianOptions(n_directions=1)


    def test_directions_must_be_a_direction_set(self):
        with pytest.raises(InvalidArgumentsError, match="DirectionVectorSet"):
            LagrangianOptions(directions=[[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])

    def test_ray_solver_must_be_a_backend(self):
        with pytest.raises(InvalidArgumentsError, match="ConvexSolver"):
            LagrangianOptions(ray_solver="scipy")

    @pytest.mark.parametrize("max_workers", [0, 2.5, "4"])
    def test_bad_max_workers(self, max_workers):
        with pytest.raises(InvalidArgumentsError, match="max_workers"):
            LagrangianOptions(max_workers=max_workers)

    def test_non_integer_directions_count(self):
        with pytest.raises(InvalidArgumentsError):
            LagrangianOptions(n_directions=8.0)


class TestArgumentChecks:
    """Invalid calls raise InvalidArgumentsError before any work is done."""

    def test_method_mismatch(self, double_integrator, double_integrator_tube):
        with pytest.raises(InvalidArgumentsError, match="Mismatch"):
            sreach_set_lag("lag-under", double_integrator, 0.8, double_integrator_tube, _options("lag-over"))

    def test_unknown_method(self, double_integrator, double_integrator_tube):
        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag("chance-open", double_integrator, 0.8, double_integrator_tube)

    @pytest.mark.parametrize("prob", [-0.1, 1.5, "0.8", True])
    def test_bad_probability(self, double_integrator, double_integrator_tube, prob):
        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag("lag-under", double_integrator, prob, double_integrator_tube)

    def test_tube_dimension(self, double_integrator):
        tube = Tube.constant(ConvexSet.from_box(-1.0, 1.0), 3)

        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag("lag-under", double_integrator, 0.8, tube)

    def test_tube_type(self, double_integrator, unit_square):
        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag("lag-under", double_integrator, 0.8, [unit_square, unit_square])

    def test_needs_a_disturbance(self, unit_square):
        system = LtiSystem(np.eye(2))

        with pytest.raises(InvalidArgumentsError, match="disturbance"):
            sreach_set_lag("lag-over", system, 0.8, Tube.constant(unit_square, 3))

    def test_underapproximation_at_probability_one(self, double_integrator, double_integrator_tube):
        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag("lag-under", double_integrator, 1.0, double_integrator_tube, _options("lag-under"))


class TestDegenerateProblems:
    """Zero horizon or zero probability return the input tube."""

    def test_zero_horizon(self, double_integrator, unit_square):
        tube = Tube([unit_square])

        result = sreach_set_lag("lag-under", double_integrator, 0.8, tube)

        assert result.approx_set is unit_square
        assert result.effective_tube is tube
        assert result.is_degenerate
        assert result.boundary_data is None

    @pytest.mark.parametrize("method", ["lag-under", "lag-over"])
    def test_zero_probability(self, double_integrator, double_integrator_tube, method):
        result = sreach_set_lag(method, double_integrator, 0.0, double_integrator_tube)

        assert result.approx_set is double_integrator_tube[0]
        assert result.effective_tube is double_integrator_tube
        assert result.disturbance_level is None


class TestScalarIntegrator:
    """x[t+1] = x[t] + u[t] + w[t] on [-5, 5] with |w| <= 0.1."""

    W = ConvexSet.from_box(-0.1, 0.1)
    tube = Tube.constant(ConvexSet.from_box(-5.0, 5.0), 4)

    @pytest.mark.parametrize("input_space", [None, ConvexSet.from_box(-1000.0, 1000.0)])
    def test_underapproximation(self, input_space):
        system = LtiSystem([[1.0]], input_mat=[[1.0]], input_space=input_space)

        result = sreach_set_lag(
            "lag-under", system, 0.5, self.tube, _options("lag-under", bounded_set=self.W, n_directions=4)
        )

        lower, upper = result.approx_set.bounds()
        assert lower[0] == pytest.approx(-4.7, abs=1e-6)
        assert upper[0] == pytest.approx(4.7, abs=1e-6)

    def test_overapproximation_with_unconstrained_input(self, integrator_system):
        result = sreach_set_lag(
            "lag-over", integrator_system, 0.5, self.tube, _options("lag-over", bounded_set=self.W)
        )

        assert np.allclose(result.approx_set.bounds(), ([-5.0], [5.0]))


class TestDoubleIntegrator:
    """End-to-end runs on a sampled double integrator."""

    def test_underapproximation(self, double_integrator, double_integrator_tube):
        result = sreach_set_lag(
            "lag-under", double_integrator, 0.8, double_integrator_tube, _options("lag-under", n_directions=16)
        )

        assert result.method == "lag-under"
        assert result.disturbance_level == pytest.approx(0.8 ** (1.0 / 3.0))
        assert isinstance(result.bounded_set, Ellipsoid)
        assert not result.approx_set.is_empty()
        assert double_integrator_tube[0].contains(result.approx_set)
        assert len(result.effective_tube) == 4
        assert result.diagnostics == []

    def test_overapproximation(self, double_integrator, double_integrator_tube):
        result = sreach_set_lag("lag-over", double_integrator, 0.8, double_integrator_tube)

        assert result.disturbance_level == pytest.approx(0.2 ** (1.0 / 3.0))
        assert result.boundary_data is None
        assert double_integrator_tube[0].contains(result.approx_set)

    def test_under_inside_over(self, double_integrator, double_integrator_tube):
        under = sreach_set_lag(
            "lag-under", double_integrator, 0.8, double_integrator_tube, _options("lag-under", n_directions=16)
        )
        over = sreach_set_lag("lag-over", double_integrator, 0.8, double_integrator_tube)

        assert over.approx_set.contains(under.approx_set)

    def test_overapproximation_at_probability_one(self, double_integrator, double_integrator_tube):
        result = sreach_set_lag("lag-over", double_integrator, 1.0, double_integrator_tube)

        assert result.disturbance_level == 0.0
        assert not result.approx_set.is_empty()

    def test_box_bounded_set(self, double_integrator, double_integrator_tube):
        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            _options("lag-under", bound_set_method="box", n_directions=16),
        )

        assert isinstance(result.bounded_set, ConvexSet)
        assert double_integrator_tube[0].contains(result.approx_set)

    def test_explicit_bounded_set(self, double_integrator, double_integrator_tube):
        W = ConvexSet.from_box([-0.01, -0.01], [0.01, 0.01])

        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            _options("lag-under", bounded_set=W, n_directions=16),
        )

        assert result.bounded_set is W

    def test_record_boundary_data(self, double_integrator, double_integrator_tube):
        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            _options("lag-under", n_directions=8, record_boundary_data=True),
        )

        assert len(result.boundary_data) == 4
        assert all(len(points) == 8 for points in result.boundary_data[0])

    def test_explicit_directions(self, double_integrator, double_integrator_tube):
        from sreach_lag.geometry import spread_directions

        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            _options("lag-under", directions=spread_directions(10, 3), record_boundary_data=True),
        )

        assert len(result.boundary_data[0][0]) == 10

    def test_explicit_directions_dimension(self, double_integrator, double_integrator_tube):
        from sreach_lag.geometry import spread_directions

        with pytest.raises(InvalidArgumentsError):
            sreach_set_lag(
                "lag-under",
                double_integrator,
                0.8,
                double_integrator_tube,
                _options("lag-under", directions=spread_directions(8, 2)),
            )

    def test_affine_restriction(self, double_integrator, unit_square):
        tube = Tube.constant(unit_square, 2)

        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            tube,
            _options("lag-under", n_directions=8, affine_restriction=[[0.0, 1.0]]),
        )

        assert not result.approx_set.is_empty()
        assert result.approx_set.volume() == 0.0

    def test_parallel_workers(self, double_integrator, double_integrator_tube):
        sequential = sreach_set_lag(
            "lag-under", double_integrator, 0.8, double_integrator_tube, _options("lag-under", n_directions=12)
        )
        parallel = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            _options("lag-under", n_directions=12, max_workers=4),
        )

        assert sequential.approx_set.contains(parallel.approx_set)
        assert parallel.approx_set.contains(sequential.approx_set)

    def test_verbose(self, double_integrator, double_integrator_tube, caplog):
        with caplog.at_level("INFO"):
            sreach_set_lag("lag-over", double_integrator, 0.8, double_integrator_tube, _options("lag-over", verbose=True))

        assert "Computing Lagrangian over approximation" in caplog.text


class TestSolverOutcomes:
    """Fatal and advisory solver statuses surface through the driver."""

    def test_infeasible_ray_aborts(self, double_integrator, double_integrator_tube, infeasible_solver):
        with pytest.raises(InternalInconsistencyError) as excinfo:
            sreach_set_lag(
                "lag-under",
                double_integrator,
                0.8,
                double_integrator_tube,
                LagrangianOptions(n_directions=8, ray_solver=infeasible_solver),
            )

        assert excinfo.value.time_step == 2

    def test_inaccurate_ray_is_reported(self, double_integrator, double_integrator_tube, inaccurate_solver):
        result = sreach_set_lag(
            "lag-under",
            double_integrator,
            0.8,
            double_integrator_tube,
            LagrangianOptions(n_directions=8, ray_solver=inaccurate_solver),
        )

        assert set(a.code for a in result.diagnostics) == {SOLVER_INACCURATE}
        assert len(result.diagnostics) == 8 * 3

    def test_correlated_disturbance(self, double_integrator_tube):
        system = LtiSystem(
            [[1.0, 0.25], [0.0, 1.0]],
            input_mat=[[0.03125], [0.25]],
            input_space=ConvexSet.from_box(-0.1, 0.1),
            disturbance=GaussianDisturbance([[0.001, 0.0005], [0.0005, 0.001]]),
        )

        result = sreach_set_lag("lag-over", system, 0.8, double_integrator_tube)

        assert not result.approx_set.is_empty()
