"""
Unit tests for sreach_lag.dynamics.
"""

import numpy as np
import pytest

from sreach_lag.dynamics import GaussianDisturbance, LtiSystem, LtvSystem
from sreach_lag.dynamics.linear_system import _LinearSystem
from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry import ConvexSet


class TestGaussianDisturbance:
    """Tests for the GaussianDisturbance dataclass."""

    def test_default_mean(self):
        dist = GaussianDisturbance(covariance=np.eye(3))

        assert dist.dimension == 3
        assert np.array_equal(dist.mean, np.zeros(3))
        assert dist.is_diagonal

    def test_scalar_covariance(self):
        dist = GaussianDisturbance(covariance=0.5)

        assert dist.covariance.shape == (1, 1)

    def test_non_diagonal(self):
        dist = GaussianDisturbance(covariance=[[1.0, 0.2], [0.2, 1.0]])

        assert not dist.is_diagonal

    def test_rejects_asymmetric(self):
        with pytest.raises(InvalidArgumentsError):
            GaussianDisturbance(covariance=[[1.0, 0.5], [0.0, 1.0]])

    def test_rejects_indefinite(self):
        with pytest.raises(InvalidArgumentsError):
            GaussianDisturbance(covariance=[[1.0, 0.0], [0.0, -1.0]])

    def test_rejects_mean_size(self):
        with pytest.raises(InvalidArgumentsError):
            GaussianDisturbance(covariance=np.eye(2), mean=[0.0])


class TestLtiSystem:
    """Tests for LtiSystem."""

    def test_dimensions(self, double_integrator):
        assert double_integrator.state_dim == 2
        assert double_integrator.input_dim == 1
        assert double_integrator.dist_dim == 2
        assert double_integrator.is_time_invariant()

    def test_default_dist_mat(self):
        sys = LtiSystem(np.eye(2), disturbance=GaussianDisturbance(np.eye(2)))

        assert np.array_equal(sys.dist_mat(5), np.eye(2))
        assert sys.input_mat(0).shape == (2, 0)

    def test_matrices_are_constant(self, double_integrator):
        assert double_integrator.state_mat(0) is double_integrator.state_mat(7)

    def test_rejects_singular_state_matrix(self):
        with pytest.raises(InvalidArgumentsError, match="invertible"):
            LtiSystem([[1.0, 0.0], [0.0, 0.0]])

    def test_inputs_without_input_space_are_unconstrained(self, integrator_system):
        assert integrator_system.input_dim == 1
        assert integrator_system.input_space is None

    def test_incomplete_subclass_cannot_be_instantiated(self):
        class NoMatrices(_LinearSystem):
            def is_time_invariant(self):
                return True

        with pytest.raises(TypeError):
            NoMatrices(1, 0, None, None)

    def test_input_space_dimension(self):
        with pytest.raises(InvalidArgumentsError):
            LtiSystem(np.eye(2), input_mat=np.ones((2, 1)), input_space=ConvexSet.from_box([-1, -1], [1, 1]))

    def test_input_space_without_inputs(self):
        with pytest.raises(InvalidArgumentsError):
            LtiSystem(np.eye(2), input_space=ConvexSet.from_box(-1.0, 1.0))

    def test_disturbance_dimension(self):
        with pytest.raises(InvalidArgumentsError):
            LtiSystem(np.eye(2), dist_mat=np.ones((2, 1)), disturbance=GaussianDisturbance(np.eye(2)))


class TestLtvSystem:
    """Tests for LtvSystem."""

    def test_sequence_of_matrices(self):
        A = np.stack([np.eye(2), 2.0 * np.eye(2)])
        sys = LtvSystem(A)

        assert sys.state_dim == 2
        assert not sys.is_time_invariant()
        assert np.array_equal(sys.state_mat(1), 2.0 * np.eye(2))

    def test_callable_matrices(self):
        sys = LtvSystem(
            lambda t: np.array([[1.0 + t]]),
            input_mat=lambda t: np.array([[1.0]]),
            input_space=ConvexSet.from_box(-1.0, 1.0),
        )

        assert sys.input_dim == 1
        assert sys.state_mat(3)[0, 0] == 4.0

    def test_missing_time_step(self):
        sys = LtvSystem(np.stack([np.eye(2)]))

        with pytest.raises(InvalidArgumentsError):
            sys.state_mat(1)

    def test_singular_at_later_step(self):
        sys = LtvSystem(lambda t: np.eye(2) * (1.0 if t == 0 else 0.0))

        sys.state_mat(0)
        with pytest.raises(InvalidArgumentsError, match="t=1"):
            sys.state_mat(1)
