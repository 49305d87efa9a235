"""
One-step robust backward reach sets.

``BackwardReachStep`` computes an underapproximation of

    {x in K_t : exists u in U, A x + B u + F w in T_{t+1} for all w in W}

by tightening T_{t+1} against F W, lifting the tightened constraints into
(x, u) space together with x in K_t and u in U, and sampling the lifted
polytope's boundary by ray shooting from its Chebyshev center. The hull of
the sampled points sits inside the lifted polytope, so its projection onto x
is a subset of the true backward set.

``OverapproxStep`` is the dual: it grows T_{t+1} by -F W and -B U and pulls
the result back through A, giving a superset of

    {x in K_t : exists u in U, exists w in W, A x + B u + F w in T_{t+1}}.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from sreach_lag.exceptions import InternalInconsistencyError, InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.directions import DirectionVectorSet
from sreach_lag.reachability.boundary import BoundaryPoint, BoundaryPointSolver


@dataclass
class StepResult:
    effective_target: ConvexSet
    boundary_points: List[BoundaryPoint] = field(default_factory=list)


def _is_void(disturbance) -> bool:
    return isinstance(disturbance, ConvexSet) and disturbance.is_empty()


class BackwardReachStep:
    """
    Robust one-step backward reach set via ray shooting.

    Parameters
    ----------
    system : LtiSystem or LtvSystem
    directions : DirectionVectorSet
        Lifted directions of dimension state_dim + input_dim.
    boundary_solver : BoundaryPointSolver, optional
    """

    def __init__(self, system, directions: DirectionVectorSet, boundary_solver: Optional[BoundaryPointSolver] = None):
        directions.require_dim(system.state_dim + system.input_dim, "lifted direction vectors")
        self.system = system
        self.directions = directions
        self.boundary_solver = boundary_solver if boundary_solver is not None else BoundaryPointSolver()

    def robustify(self, t: int, target: ConvexSet, disturbance) -> ConvexSet:
        """T' = target minus F(t) W (no tightening for an empty polytope W)."""
        if _is_void(disturbance):
            return target
        return target.minkowski_difference(disturbance.affine_map(self.system.dist_mat(t)))

    def lift(self, t: int, target: ConvexSet, safe_set: Optional[ConvexSet] = None) -> ConvexSet:
        """{(x, u) : A x + B u in target, u in U, x in safe_set}."""
        return _lift(self.system, t, target, safe_set)

    def __call__(
        self,
        t: int,
        next_target: ConvexSet,
        current_target: ConvexSet,
        disturbance,
        realization_index: Optional[int] = None,
    ) -> StepResult:
        n = self.system.state_dim
        try:
            robust_target = self.robustify(t, next_target, disturbance)
            if robust_target.is_empty():
                return StepResult(ConvexSet.empty(n))

            lifted = self.lift(t, robust_target, current_target)
            if lifted.is_empty():
                return StepResult(ConvexSet.empty(n))

            anchor, _ = lifted.chebyshev_center()
            points = self.boundary_solver.solve_all(lifted, anchor, self.directions)
            lifted_under = ConvexSet.from_vertices(np.vstack([p.point for p in points]))
            candidate = lifted_under.project(range(n))
            return StepResult(candidate.intersect(current_target), points)
        except InternalInconsistencyError as exc:
            raise exc.with_context(time_step=t, realization_index=realization_index)


class OverapproxStep:
    """
    Dual one-step backward set: (T (+) -F W (+) -B U) pulled back through A.

    With unconstrained inputs -B U is unbounded, so the grown target is
    lifted into (x, u) space instead and projected back onto x. That needs
    the lifted set to be bounded, i.e. B(t) of full column rank.

    A support-function disturbance is added through its support values on
    the facet normals, which over-bounds the sum and keeps the result a
    superset.
    """

    def __init__(self, system):
        self.system = system

    def __call__(
        self,
        t: int,
        next_target: ConvexSet,
        current_target: ConvexSet,
        disturbance,
        realization_index: Optional[int] = None,
    ) -> StepResult:
        n, m = self.system.state_dim, self.system.input_dim
        if next_target.is_empty():
            return StepResult(ConvexSet.empty(n))
        grown = next_target
        if not _is_void(disturbance):
            grown = grown.minkowski_sum(disturbance.affine_map(-self.system.dist_mat(t)))
        if m and self.system.input_space is None:
            if np.linalg.matrix_rank(self.system.input_mat(t)) < m:
                raise InvalidArgumentsError(
                    f"unconstrained inputs need a full column rank input matrix (t={t})"
                )
            lifted = _lift(self.system, t, grown, current_target)
            return StepResult(lifted.project(range(n)))
        if m:
            grown = grown.minkowski_sum(self.system.input_space.affine_map(-self.system.input_mat(t)))
        backward = grown.preimage(self.system.state_mat(t))
        return StepResult(backward.intersect(current_target))


def _lift(system, t, target, safe_set=None):
    n, m = system.state_dim, system.input_dim
    lifted = target.preimage(np.hstack([system.state_mat(t), system.input_mat(t)]))
    if m and system.input_space is not None:
        selector = np.hstack([np.zeros((m, n)), np.eye(m)])
        lifted = lifted.intersect(system.input_space.preimage(selector))
    if safe_set is not None:
        selector = np.hstack([np.eye(n), np.zeros((n, m))])
        lifted = lifted.intersect(safe_set.preimage(selector))
    return lifted
