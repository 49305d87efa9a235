"""
Lagrangian backward recursions over a target tube.

Both recursions fill a preallocated effective tube from the last index down
to zero. Step t needs the finished result of step t+1, so time is strictly
sequential; the realizations of a multi-realization disturbance at one step
are independent and may run on a thread pool.

With several disturbance realizations, each one is run against the same
T_{t+1} and the vertex sets of the results are merged by a convex hull. Each
individual result is sound; the hull is the documented approximation of the
method and is only known to behave reliably up to two state dimensions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from sreach_lag.diagnostics import HIGH_DIMENSION, HULL_MERGE_ACCURACY, Diagnostics
from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.directions import DirectionVectorSet
from sreach_lag.geometry.support_function import SupportFunctionSet
from sreach_lag.geometry.tube import Tube
from sreach_lag.parallel import map_ordered
from sreach_lag.reachability.backward_step import BackwardReachStep, OverapproxStep
from sreach_lag.reachability.boundary import BoundaryPointSolver

logger = logging.getLogger(__name__)

MAX_PRACTICAL_STATE_DIM = 4


@dataclass
class RecursionResult:
    """
    Output of a Lagrangian recursion.

    Attributes
    ----------
    approx_set : ConvexSet
        First element of the effective tube.
    effective_tube : Tube
        Effective targets T_0, ..., T_N.
    boundary_data : list or None
        When requested: ``boundary_data[t][r]`` is the list of
        ``BoundaryPoint`` for realization r at step t (None at t = N).
    """

    approx_set: ConvexSet
    effective_tube: Tube
    boundary_data: Optional[List] = None


def as_realizations(disturbance, dist_dim: int) -> list:
    """Normalize a disturbance (single set or collection) to a checked list."""
    match disturbance:
        case ConvexSet() | SupportFunctionSet():
            realizations = [disturbance]
        case list() | tuple() if len(disturbance) > 0:
            realizations = list(disturbance)
        case _:
            raise InvalidArgumentsError(
                "disturbance must be a ConvexSet, a SupportFunctionSet or a nonempty collection of them"
            )
    for i, w in enumerate(realizations):
        if not isinstance(w, (ConvexSet, SupportFunctionSet)):
            raise InvalidArgumentsError(f"disturbance realization {i} is {type(w).__name__}")
        if w.dim != dist_dim:
            raise InvalidArgumentsError(
                f"disturbance realization {i} is {w.dim}-dimensional, expected {dist_dim}"
            )
    return realizations


def _check_tube(system, tube):
    if not isinstance(tube, Tube):
        raise InvalidArgumentsError(f"target tube must be a Tube, got {type(tube).__name__}")
    if tube.dim != system.state_dim:
        raise InvalidArgumentsError(f"tube is {tube.dim}-dimensional, system state is {system.state_dim}-dimensional")


def _warn_dimensions(system, n_realizations, tube_length, diagnostics):
    n = system.state_dim
    if n > MAX_PRACTICAL_STATE_DIM:
        diagnostics.warn(
            HIGH_DIMENSION,
            "Both vertex and facet representations are required by the set recursion; "
            f"systems with more than {MAX_PRACTICAL_STATE_DIM} states can take significant time.",
            state_dim=n,
        )
    if tube_length > 1 and n > 2 and n_realizations > 1:
        diagnostics.warn(
            HULL_MERGE_ACCURACY,
            "The convex hull merge of disturbance realizations may produce inconsistent "
            "or inaccurate results for systems with more than 2 dimensions.",
            state_dim=n,
            realizations=n_realizations,
        )


def _merge(sets: List[ConvexSet], dim: int) -> ConvexSet:
    if len(sets) == 1:
        return sets[0]
    vertices = [s.V for s in sets if not s.is_empty()]
    if not vertices:
        return ConvexSet.empty(dim)
    return ConvexSet.from_vertices(np.vstack(vertices)).to_facets()


def _recurse(step, system, tube, realizations, max_workers, record, verbose, label) -> RecursionResult:
    N = len(tube)
    effective: List[Optional[ConvexSet]] = [None] * N
    effective[N - 1] = tube[N - 1]
    boundary_data = [None] * N if record else None

    for t in range(N - 2, -1, -1):
        if verbose:
            logger.info("Lagrangian %s: computing effective target for t=%d", label, t)
        results = map_ordered(
            lambda r, w: step(t, effective[t + 1], tube[t], w, realization_index=r),
            realizations,
            max_workers,
        )
        effective[t] = _merge([res.effective_target for res in results], system.state_dim)
        if record:
            boundary_data[t] = [res.boundary_points for res in results]

    return RecursionResult(effective[0], Tube(effective), boundary_data)


def lagrangian_underapprox(
    system,
    tube: Tube,
    disturbance,
    directions: DirectionVectorSet,
    boundary_solver: Optional[BoundaryPointSolver] = None,
    diagnostics: Optional[Diagnostics] = None,
    max_workers: Optional[int] = None,
    record_boundary_data: bool = False,
    verbose: bool = False,
) -> RecursionResult:
    """
    Underapproximate the stochastic reach set by the robust backward recursion.

    Parameters
    ----------
    system : LtiSystem or LtvSystem
    tube : Tube
        Target tube K_0, ..., K_N.
    disturbance : ConvexSet, SupportFunctionSet, or list of them
        Bounded disturbance set(s) scaled to the required probability.
    directions : DirectionVectorSet
        Lifted ray-shooting directions (state_dim + input_dim).
    boundary_solver : BoundaryPointSolver, optional
        Ray-shooting engine; built from ``diagnostics``/``max_workers`` if omitted.
    diagnostics : Diagnostics, optional
    max_workers : int, optional
        Thread pool size for per-direction and per-realization work.
    record_boundary_data : bool
        Keep the (direction, theta, point) of every sampled vertex.
    verbose : bool
        Log progress at INFO level.

    Returns
    -------
    RecursionResult

    Raises
    ------
    InvalidArgumentsError
        Bad tube, disturbance or direction dimensions.
    InternalInconsistencyError
        A boundary-point solve failed; no partial tube is returned.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    _check_tube(system, tube)
    realizations = as_realizations(disturbance, system.dist_dim)
    directions.require_dim(system.state_dim + system.input_dim, "lifted direction vectors")
    _warn_dimensions(system, len(realizations), len(tube), diagnostics)

    if boundary_solver is None:
        boundary_solver = BoundaryPointSolver(diagnostics=diagnostics, max_workers=max_workers)
    step = BackwardReachStep(system, directions, boundary_solver)
    return _recurse(step, system, tube, realizations, max_workers, record_boundary_data, verbose, "underapproximation")


def lagrangian_overapprox(
    system,
    tube: Tube,
    disturbance,
    diagnostics: Optional[Diagnostics] = None,
    max_workers: Optional[int] = None,
    verbose: bool = False,
) -> RecursionResult:
    """
    Overapproximate the stochastic reach set by the dual (Minkowski sum) recursion.

    Parameters mirror ``lagrangian_underapprox``; no directions are needed
    because every step is an exact or outer-bounding set operation.
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    _check_tube(system, tube)
    realizations = as_realizations(disturbance, system.dist_dim)
    _warn_dimensions(system, len(realizations), len(tube), diagnostics)
    step = OverapproxStep(system)
    return _recurse(step, system, tube, realizations, max_workers, False, verbose, "overapproximation")
