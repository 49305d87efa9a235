"""
Convex-optimization back-ends.

Every linear program issued by sreach_lag goes through a ``ConvexSolver``:
submit a ``LinearProgram``, receive a ``SolverResult`` holding a
``SolverStatus`` and an optional solution. Recursion code never imports a
solver library directly, so back-ends are interchangeable.

Two back-ends ship with the package:

- ``CvxpyBackend`` models the problem with cvxpy (any installed LP-capable
  solver, auto-selected when ``solver`` is None).
- ``ScipyBackend`` calls ``scipy.optimize.linprog`` (HiGHS).
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cvxpy as cp
import numpy as np
from scipy.optimize import linprog

from sreach_lag.exceptions import InvalidArgumentsError


class SolverStatus(enum.Enum):
    SOLVED = "solved"
    SOLVED_INACCURATE = "solved_inaccurate"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    ERROR = "error"

    @property
    def is_solved(self) -> bool:
        return self in (SolverStatus.SOLVED, SolverStatus.SOLVED_INACCURATE)


@dataclass
class LinearProgram:
    """
    minimize    c @ z
    subject to  A_ub @ z <= b_ub
                A_eq @ z == b_eq
                bounds[i][0] <= z[i] <= bounds[i][1]   (None = free)
    """

    c: np.ndarray
    A_ub: Optional[np.ndarray] = None
    b_ub: Optional[np.ndarray] = None
    A_eq: Optional[np.ndarray] = None
    b_eq: Optional[np.ndarray] = None
    bounds: Optional[Sequence[Tuple[Optional[float], Optional[float]]]] = None

    def __post_init__(self):
        self.c = np.asarray(self.c, dtype=float).ravel()
        n = self.c.size
        self.A_ub, self.b_ub = _as_block(self.A_ub, self.b_ub, n)
        self.A_eq, self.b_eq = _as_block(self.A_eq, self.b_eq, n)
        if self.bounds is None:
            self.bounds = [(None, None)] * n
        elif len(self.bounds) != n:
            raise ValueError(f"bounds has {len(self.bounds)} entries, expected {n}")

    @property
    def n_variables(self) -> int:
        return self.c.size


def _as_block(A, b, n):
    if A is None or np.size(A) == 0:
        return np.zeros((0, n)), np.zeros(0)
    A = np.atleast_2d(np.asarray(A, dtype=float))
    b = np.asarray(b, dtype=float).ravel()
    if A.shape[1] != n or A.shape[0] != b.size:
        raise ValueError(f"constraint block shape {A.shape} incompatible with rhs {b.shape} and {n} variables")
    return A, b


@dataclass
class SolverResult:
    status: SolverStatus
    x: Optional[np.ndarray] = None
    value: Optional[float] = None
    raw_status: Optional[str] = None


class ConvexSolver(ABC):
    """Interface for LP back-ends."""

    name = "abstract"

    @abstractmethod
    def solve(self, lp: LinearProgram) -> SolverResult:
        """Solve ``lp`` and classify the outcome."""
        pass


_CVXPY_STATUS = {
    cp.OPTIMAL: SolverStatus.SOLVED,
    cp.OPTIMAL_INACCURATE: SolverStatus.SOLVED_INACCURATE,
    cp.INFEASIBLE: SolverStatus.INFEASIBLE,
    cp.INFEASIBLE_INACCURATE: SolverStatus.INFEASIBLE,
    cp.UNBOUNDED: SolverStatus.UNBOUNDED,
    cp.UNBOUNDED_INACCURATE: SolverStatus.UNBOUNDED,
}


class CvxpyBackend(ConvexSolver):
    """
    Solve LPs through cvxpy.

    Parameters
    ----------
    solver : str, optional
        CVXPY solver name. If None, cvxpy auto-selects.
    verbose : bool
        Forward solver output.
    """

    name = "cvxpy"

    def __init__(self, solver: Optional[str] = None, verbose: bool = False, **solver_kwargs):
        self.solver = solver
        self.verbose = verbose
        self.solver_kwargs = solver_kwargs

    def solve(self, lp: LinearProgram) -> SolverResult:
        z = cp.Variable(lp.n_variables)
        constraints = []
        if lp.A_ub.shape[0]:
            constraints.append(lp.A_ub @ z <= lp.b_ub)
        if lp.A_eq.shape[0]:
            constraints.append(lp.A_eq @ z == lp.b_eq)
        for i, (lo, hi) in enumerate(lp.bounds):
            if lo is not None:
                constraints.append(z[i] >= lo)
            if hi is not None:
                constraints.append(z[i] <= hi)

        prob = cp.Problem(cp.Minimize(lp.c @ z), constraints)
        try:
            prob.solve(solver=self.solver, verbose=self.verbose, **self.solver_kwargs)
        except cp.error.SolverError as exc:
            return SolverResult(SolverStatus.ERROR, raw_status=str(exc))

        status = _CVXPY_STATUS.get(prob.status, SolverStatus.ERROR)
        if not status.is_solved or z.value is None:
            if status.is_solved:
                status = SolverStatus.ERROR
            return SolverResult(status, raw_status=prob.status)
        return SolverResult(
            status,
            x=np.array(z.value, dtype=float).ravel(),
            value=float(prob.value),
            raw_status=prob.status,
        )


_SCIPY_STATUS = {
    0: SolverStatus.SOLVED,
    2: SolverStatus.INFEASIBLE,
    3: SolverStatus.UNBOUNDED,
}


class ScipyBackend(ConvexSolver):
    """Solve LPs with ``scipy.optimize.linprog`` (HiGHS)."""

    name = "scipy"

    def __init__(self, method: str = "highs"):
        self.method = method

    def solve(self, lp: LinearProgram) -> SolverResult:
        res = linprog(
            lp.c,
            A_ub=lp.A_ub if lp.A_ub.shape[0] else None,
            b_ub=lp.b_ub if lp.A_ub.shape[0] else None,
            A_eq=lp.A_eq if lp.A_eq.shape[0] else None,
            b_eq=lp.b_eq if lp.A_eq.shape[0] else None,
            bounds=list(lp.bounds),
            method=self.method,
        )
        status = _SCIPY_STATUS.get(res.status, SolverStatus.ERROR)
        if not status.is_solved:
            return SolverResult(status, raw_status=res.message)
        return SolverResult(status, x=np.asarray(res.x, dtype=float), value=float(res.fun), raw_status=res.message)


BACKENDS = {"cvxpy": CvxpyBackend, "scipy": ScipyBackend}


def solver_by_name(name: str) -> ConvexSolver:
    """Back-end for a configuration name, one of ``BACKENDS``."""
    try:
        return BACKENDS[name]()
    except (KeyError, TypeError):
        raise InvalidArgumentsError(f"unknown solver {name!r}; expected one of {sorted(BACKENDS)}") from None


def default_geometry_solver() -> ConvexSolver:
    """Back-end used by ConvexSet for Chebyshev centers and support LPs."""
    return ScipyBackend()


def default_ray_solver() -> ConvexSolver:
    """Back-end used for boundary-point (ray shooting) programs."""
    return CvxpyBackend()
