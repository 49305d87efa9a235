"""
Ray shooting: boundary points of a polytope along fixed directions.

For a facet-represented set S, an anchor c in S and a unit direction d,

    maximize    theta
    subject to  theta >= 0
                p == c + theta * d
                p in S

theta = 0 is always feasible because the anchor is S's own Chebyshev center,
so an infeasible/unbounded/failed report means something is inconsistent
upstream and the whole recursion must stop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from sreach_lag.diagnostics import SOLVER_INACCURATE, Diagnostics
from sreach_lag.exceptions import InternalInconsistencyError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.directions import DirectionVectorSet
from sreach_lag.parallel import map_ordered
from sreach_lag.solvers import ConvexSolver, LinearProgram, SolverStatus, default_ray_solver


@dataclass(frozen=True)
class BoundaryPoint:
    """Recorded ray-shooting outcome for one direction."""

    direction: np.ndarray
    theta: float
    point: np.ndarray


class BoundaryPointSolver:
    """
    Solve one ray-maximization LP per direction.

    Parameters
    ----------
    solver : ConvexSolver, optional
        LP back-end; cvxpy by default.
    diagnostics : Diagnostics, optional
        Sink for ``solver-inaccurate`` advisories.
    max_workers : int, optional
        Thread pool size for ``solve_all``; None runs sequentially.
    """

    def __init__(
        self,
        solver: Optional[ConvexSolver] = None,
        diagnostics: Optional[Diagnostics] = None,
        max_workers: Optional[int] = None,
    ):
        self.solver = solver if solver is not None else default_ray_solver()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.max_workers = max_workers

    def solve(self, lifted_set: ConvexSet, anchor, direction, index: Optional[int] = None) -> BoundaryPoint:
        anchor = np.asarray(anchor, dtype=float).ravel()
        direction = np.asarray(direction, dtype=float).ravel()
        n = anchor.size
        A, b, Ae, be = lifted_set.A, lifted_set.b, lifted_set.Ae, lifted_set.be

        # z = (theta, p)
        c = np.zeros(n + 1)
        c[0] = -1.0
        A_ub = np.hstack([np.zeros((A.shape[0], 1)), A])
        A_eq = np.vstack([
            np.hstack([-direction[:, None], np.eye(n)]),
            np.hstack([np.zeros((Ae.shape[0], 1)), Ae]),
        ])
        b_eq = np.concatenate([anchor, be])
        bounds = [(0.0, None)] + [(None, None)] * n

        res = self.solver.solve(LinearProgram(c, A_ub, b, A_eq, b_eq, bounds=bounds))
        if res.status == SolverStatus.SOLVED_INACCURATE:
            self.diagnostics.warn(
                SOLVER_INACCURATE,
                "Solver returned an inaccurate solution while shooting a ray for the "
                "Lagrangian underapproximation. Continuing nevertheless.",
                direction_index=index,
            )
        elif res.status != SolverStatus.SOLVED:
            raise InternalInconsistencyError(
                f"Underapproximation failed: boundary-point solver status {res.status.value}",
                direction_index=index,
            )
        theta = float(res.x[0])
        return BoundaryPoint(direction=direction, theta=theta, point=anchor + theta * direction)

    def solve_all(self, lifted_set: ConvexSet, anchor, directions: DirectionVectorSet) -> List[BoundaryPoint]:
        """Boundary point for every direction, ordered as ``directions``."""
        directions.require_dim(lifted_set.dim)
        # workers share the set; materialize the facet form up front
        lifted_set = lifted_set.to_facets()
        return map_ordered(
            lambda i, d: self.solve(lifted_set, anchor, d, index=i),
            list(directions),
            self.max_workers,
        )
