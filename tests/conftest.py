"""
Pytest configuration and shared fixtures for sreach_lag tests.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from sreach_lag.dynamics import GaussianDisturbance, LtiSystem
from sreach_lag.geometry import ConvexSet, DirectionVectorSet, Tube
from sreach_lag.solvers import ScipyBackend, SolverResult, SolverStatus, ConvexSolver


@pytest.fixture
def unit_square():
    """[-1, 1]^2 in facet form."""
    return ConvexSet.from_box([-1.0, -1.0], [1.0, 1.0])


@pytest.fixture
def axis_directions_2d():
    """+-e1, +-e2 in the plane."""
    return DirectionVectorSet(np.hstack([np.eye(2), -np.eye(2)]))


@pytest.fixture
def cube_corner_directions():
    """The eight normalized corners of the 3-cube."""
    corners = np.array(np.meshgrid([-1, 1], [-1, 1], [-1, 1])).reshape(3, -1).astype(float)
    return DirectionVectorSet(corners / np.sqrt(3.0))


@pytest.fixture
def scalar_system():
    """x[t+1] = x[t] + 0 u[t] + w[t] with u in [-1, 1]."""
    return LtiSystem(
        state_mat=[[1.0]],
        input_mat=[[0.0]],
        input_space=ConvexSet.from_box(-1.0, 1.0),
    )


@pytest.fixture
def integrator_system():
    """x[t+1] = x[t] + u[t] + w[t] with unconstrained u."""
    return LtiSystem(state_mat=[[1.0]], input_mat=[[1.0]])


@pytest.fixture
def scaled_system():
    """x[t+1] = 2 x[t] + u[t] + w[t] with u in [-0.5, 0.5]^2."""
    return LtiSystem(
        state_mat=2.0 * np.eye(2),
        input_mat=np.eye(2),
        input_space=ConvexSet.from_box([-0.5, -0.5], [0.5, 0.5]),
    )


@pytest.fixture
def double_integrator():
    """Sampled double integrator with a small Gaussian disturbance."""
    T = 0.25
    return LtiSystem(
        state_mat=[[1.0, T], [0.0, 1.0]],
        input_mat=[[T ** 2 / 2.0], [T]],
        input_space=ConvexSet.from_box(-0.1, 0.1),
        disturbance=GaussianDisturbance(covariance=0.001 * np.eye(2)),
    )


@pytest.fixture
def double_integrator_tube():
    """Safe set [-1, 1]^2 for three steps, target [-0.5, 0.5]^2 at the end."""
    safe = ConvexSet.from_box([-1.0, -1.0], [1.0, 1.0])
    target = ConvexSet.from_box([-0.5, -0.5], [0.5, 0.5])
    return Tube([safe, safe, safe, target])


class StatusSolver(ConvexSolver):
    """
    Test back-end: solves with HiGHS and reports a fixed status.

    ``status=INFEASIBLE`` drops the solution, ``SOLVED_INACCURATE`` keeps it.
    """

    name = "status"

    def __init__(self, status):
        self.status = status
        self.calls = 0
        self._inner = ScipyBackend()

    def solve(self, lp):
        self.calls += 1
        res = self._inner.solve(lp)
        if self.status.is_solved:
            return SolverResult(self.status, x=res.x, value=res.value, raw_status="forced")
        return SolverResult(self.status, raw_status="forced")


@pytest.fixture
def infeasible_solver():
    return StatusSolver(SolverStatus.INFEASIBLE)


@pytest.fixture
def inaccurate_solver():
    return StatusSolver(SolverStatus.SOLVED_INACCURATE)
