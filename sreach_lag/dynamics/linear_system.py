"""
Discrete-time linear systems with additive stochastic disturbance.

    x[t+1] = A(t) x[t] + B(t) u[t] + F(t) w[t],   u[t] in U

The recursion only reads these objects. ``A(t)`` must be invertible so the
backward (preimage) identity used by the Lagrangian recursion holds. A system
with inputs but no ``input_space`` has unconstrained inputs, U = R^m.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, Union

import numpy as np

from sreach_lag.dynamics.disturbance import GaussianDisturbance
from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet

MatrixSource = Union[np.ndarray, Sequence[np.ndarray], Callable[[int], np.ndarray]]


def _check_invertible(A: np.ndarray, where: str):
    if A.shape[0] != A.shape[1]:
        raise InvalidArgumentsError(f"state matrix {where} must be square, got {A.shape}")
    if np.linalg.matrix_rank(A) < A.shape[0]:
        raise InvalidArgumentsError(f"state matrix {where} must be invertible")


class _LinearSystem(ABC):
    def __init__(self, state_dim: int, input_dim: int, input_space: Optional[ConvexSet], disturbance):
        self.state_dim = state_dim
        self.input_dim = input_dim
        if input_dim > 0:
            if input_space is not None and input_space.dim != input_dim:
                raise InvalidArgumentsError(
                    f"input_space has dimension {input_space.dim}, expected {input_dim}"
                )
        elif input_space is not None:
            raise InvalidArgumentsError("input_space given for a system without inputs")
        self.input_space = input_space
        if disturbance is not None and not isinstance(disturbance, GaussianDisturbance):
            raise InvalidArgumentsError(
                f"disturbance must be GaussianDisturbance, got {type(disturbance).__name__}"
            )
        self.disturbance = disturbance

    @property
    def dist_dim(self) -> int:
        if self.disturbance is not None:
            return self.disturbance.dimension
        return self.dist_mat(0).shape[1]

    @abstractmethod
    def state_mat(self, t: int = 0) -> np.ndarray:
        """State matrix A(t)."""
        pass

    @abstractmethod
    def input_mat(self, t: int = 0) -> np.ndarray:
        """Input matrix B(t), shape (n, m)."""
        pass

    @abstractmethod
    def dist_mat(self, t: int = 0) -> np.ndarray:
        """Disturbance matrix F(t)."""
        pass

    @abstractmethod
    def is_time_invariant(self) -> bool:
        pass

    def _check_shapes(self, A, B, F, where):
        n, m = self.state_dim, self.input_dim
        _check_invertible(A, where)
        if A.shape != (n, n):
            raise InvalidArgumentsError(f"state matrix {where} must be {n}x{n}, got {A.shape}")
        if B.shape != (n, m):
            raise InvalidArgumentsError(f"input matrix {where} must be {n}x{m}, got {B.shape}")
        if F.shape[0] != n:
            raise InvalidArgumentsError(f"disturbance matrix {where} must have {n} rows, got {F.shape}")
        if self.disturbance is not None and F.shape[1] != self.disturbance.dimension:
            raise InvalidArgumentsError(
                f"disturbance matrix {where} has {F.shape[1]} columns, "
                f"disturbance is {self.disturbance.dimension}-dimensional"
            )


class LtiSystem(_LinearSystem):
    """
    Linear time-invariant system.

    Parameters
    ----------
    state_mat : array_like, shape (n, n)
        Invertible state matrix A.
    input_mat : array_like, shape (n, m), optional
        Input matrix B. Omit for an autonomous system.
    dist_mat : array_like, shape (n, p), optional
        Disturbance matrix F, identity by default.
    input_space : ConvexSet, optional
        Admissible inputs U. Inputs are unconstrained when omitted.
    disturbance : GaussianDisturbance, optional
        Distribution of w.
    """

    def __init__(self, state_mat, input_mat=None, dist_mat=None, input_space=None, disturbance=None):
        A = np.atleast_2d(np.asarray(state_mat, dtype=float))
        n = A.shape[0]
        B = np.zeros((n, 0)) if input_mat is None else np.asarray(input_mat, dtype=float).reshape(n, -1)
        if dist_mat is None:
            p = disturbance.dimension if disturbance is not None else n
            F = np.eye(n, p)
        else:
            F = np.asarray(dist_mat, dtype=float).reshape(n, -1)
        super().__init__(n, B.shape[1], input_space, disturbance)
        self._check_shapes(A, B, F, "")
        self._A, self._B, self._F = A, B, F

    def state_mat(self, t: int = 0) -> np.ndarray:
        return self._A

    def input_mat(self, t: int = 0) -> np.ndarray:
        return self._B

    def dist_mat(self, t: int = 0) -> np.ndarray:
        return self._F

    def is_time_invariant(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"LtiSystem(state_dim={self.state_dim}, input_dim={self.input_dim})"


class LtvSystem(_LinearSystem):
    """
    Linear time-varying system.

    Each matrix argument is either a constant array, a sequence indexed by
    time, or a callable ``t -> array``. Shapes and invertibility are checked
    when a matrix is first requested for a given time step.
    """

    def __init__(
        self,
        state_mat: MatrixSource,
        input_mat: Optional[MatrixSource] = None,
        dist_mat: Optional[MatrixSource] = None,
        input_space: Optional[ConvexSet] = None,
        disturbance: Optional[GaussianDisturbance] = None,
        state_dim: Optional[int] = None,
        input_dim: Optional[int] = None,
    ):
        self._A = _as_source(state_mat)
        A0 = np.atleast_2d(np.asarray(self._A(0), dtype=float))
        n = state_dim if state_dim is not None else A0.shape[0]
        if input_mat is None:
            self._B = lambda t: np.zeros((n, 0))
        else:
            self._B = _as_source(input_mat)
        if dist_mat is None:
            p = disturbance.dimension if disturbance is not None else n
            self._F = lambda t: np.eye(n, p)
        else:
            self._F = _as_source(dist_mat)
        m = input_dim if input_dim is not None else np.asarray(self._B(0)).reshape(n, -1).shape[1]
        super().__init__(n, m, input_space, disturbance)
        self._checked = set()

    def _matrices(self, t: int):
        A = np.atleast_2d(np.asarray(self._A(t), dtype=float))
        B = np.asarray(self._B(t), dtype=float).reshape(self.state_dim, -1)
        F = np.asarray(self._F(t), dtype=float).reshape(self.state_dim, -1)
        if t not in self._checked:
            self._check_shapes(A, B, F, f"at t={t}")
            self._checked.add(t)
        return A, B, F

    def state_mat(self, t: int = 0) -> np.ndarray:
        return self._matrices(t)[0]

    def input_mat(self, t: int = 0) -> np.ndarray:
        return self._matrices(t)[1]

    def dist_mat(self, t: int = 0) -> np.ndarray:
        return self._matrices(t)[2]

    def is_time_invariant(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"LtvSystem(state_dim={self.state_dim}, input_dim={self.input_dim})"


def _as_source(value) -> Callable[[int], np.ndarray]:
    if callable(value):
        return value
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 3:
        def indexed(t):
            if t < 0 or t >= arr.shape[0]:
                raise InvalidArgumentsError(f"no matrix given for time step {t}")
            return arr[t]
        return indexed
    return lambda t: arr
