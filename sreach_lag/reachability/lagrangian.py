"""
Lagrangian approximation of stochastic reach sets.

Implements the set-based method of

    J. D. Gleason, A. P. Vinod, M. M. K. Oishi, "Underapproximation of
    Reach-Avoid Sets for Discrete-Time Stochastic Systems via Lagrangian
    Methods," IEEE CDC, 2017.

The probability threshold p over a horizon N is converted into a
per-step disturbance level

    theta = p^(1/N)        for "lag-under"
    theta = (1 - p)^(1/N)  for "lag-over"

and the disturbance is replaced by a bounded set holding that level. The
backward recursion then yields an underapproximation (subset) or an
overapproximation (superset) of the set of initial states that stay in the
target tube with probability at least p.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from sreach_lag.diagnostics import Advisory, Diagnostics
from sreach_lag.dynamics.linear_system import LtiSystem, LtvSystem
from sreach_lag.exceptions import InternalInconsistencyError, InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.directions import DirectionVectorSet, spread_directions
from sreach_lag.geometry.tube import Tube
from sreach_lag.reachability.boundary import BoundaryPointSolver
from sreach_lag.reachability.bounded_set import BOUND_SET_METHODS, bounded_disturbance_set
from sreach_lag.reachability.recursion import lagrangian_overapprox, lagrangian_underapprox
from sreach_lag.solvers import ConvexSolver

logger = logging.getLogger(__name__)

METHODS = ("lag-under", "lag-over")


@dataclass
class LagrangianOptions:
    """
    Options for ``sreach_set_lag``.

    Attributes
    ----------
    method : str
        "lag-under" or "lag-over"; must match the method passed to the driver.
    bound_set_method : str
        How the bounded disturbance set is built: "ellipsoid" or "box".
    n_directions : int
        Number of lifted ray-shooting directions (underapproximation only).
    directions : DirectionVectorSet, optional
        Explicit lifted directions; overrides ``n_directions``.
    affine_restriction : np.ndarray, optional
        State-space equality matrix Ae; rays stay in the affine hull Ae x = const.
    bounded_set : optional
        Precomputed bounded disturbance set (or list of realizations); skips
        the probability-to-set computation.
    verbose : bool
        Log progress at INFO level.
    max_workers : int, optional
        Thread pool size for ray shooting and realizations.
    record_boundary_data : bool
        Keep per-vertex (direction, theta, point) records.
    ray_solver : ConvexSolver, optional
        LP back-end for ray shooting.
    """

    method: str = "lag-under"
    bound_set_method: str = "ellipsoid"
    n_directions: int = 32
    directions: Optional[DirectionVectorSet] = None
    affine_restriction: Optional[np.ndarray] = None
    bounded_set: Any = None
    verbose: bool = False
    max_workers: Optional[int] = None
    record_boundary_data: bool = False
    ray_solver: Optional[ConvexSolver] = None

    def __post_init__(self):
        if self.method not in METHODS:
            raise InvalidArgumentsError(f"unknown method {self.method!r}; expected one of {METHODS}")
        if self.bound_set_method not in BOUND_SET_METHODS:
            raise InvalidArgumentsError(
                f"unknown bound_set_method {self.bound_set_method!r}; expected one of {BOUND_SET_METHODS}"
            )
        if not _is_int(self.n_directions) or self.n_directions < 2:
            raise InvalidArgumentsError(f"n_directions must be an integer of at least 2, got {self.n_directions!r}")
        if self.directions is not None and not isinstance(self.directions, DirectionVectorSet):
            raise InvalidArgumentsError(
                f"directions must be a DirectionVectorSet, got {type(self.directions).__name__}"
            )
        if self.ray_solver is not None and not isinstance(self.ray_solver, ConvexSolver):
            raise InvalidArgumentsError(
                f"ray_solver must be a ConvexSolver, got {type(self.ray_solver).__name__}"
            )
        if self.max_workers is not None and (not _is_int(self.max_workers) or self.max_workers < 1):
            raise InvalidArgumentsError(f"max_workers must be a positive integer, got {self.max_workers!r}")


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass
class LagrangianResult:
    """
    Result record of ``sreach_set_lag``.

    Attributes
    ----------
    approx_set : ConvexSet
        Under- or overapproximation of the stochastic reach set at t = 0.
    effective_tube : Tube or None
        Effective target tube; the input tube for degenerate problems.
    boundary_data : list or None
        Recorded ray-shooting data when requested.
    diagnostics : list of Advisory
        Non-fatal warnings raised during the computation.
    method : str
    prob_thresh : float
    disturbance_level : float or None
        Per-step probability level theta used for the bounded set.
    bounded_set : optional
        The bounded disturbance set(s) used by the recursion.
    """

    approx_set: ConvexSet
    effective_tube: Optional[Tube]
    method: str
    prob_thresh: float
    boundary_data: Optional[List] = None
    diagnostics: List[Advisory] = field(default_factory=list)
    disturbance_level: Optional[float] = None
    bounded_set: Any = None

    @property
    def is_degenerate(self) -> bool:
        return self.disturbance_level is None


def disturbance_level(method: str, prob_thresh: float, horizon: int) -> float:
    """Per-step probability level for the bounded disturbance set."""
    match method:
        case "lag-under":
            return prob_thresh ** (1.0 / horizon)
        case "lag-over":
            return (1.0 - prob_thresh) ** (1.0 / horizon)
        case _:
            raise InvalidArgumentsError(f"unknown method {method!r}; expected one of {METHODS}")


def _validate(method, system, prob_thresh, tube, options):
    if method not in METHODS:
        raise InvalidArgumentsError(f"unknown method {method!r}; expected one of {METHODS}")
    if not isinstance(system, (LtiSystem, LtvSystem)):
        raise InvalidArgumentsError(f"system must be LtiSystem or LtvSystem, got {type(system).__name__}")
    if not isinstance(tube, Tube):
        raise InvalidArgumentsError(f"safety tube must be a Tube, got {type(tube).__name__}")
    if tube.dim != system.state_dim:
        raise InvalidArgumentsError(
            f"tube is {tube.dim}-dimensional, system state is {system.state_dim}-dimensional"
        )
    if isinstance(prob_thresh, bool) or not isinstance(prob_thresh, (int, float, np.floating, np.integer)):
        raise InvalidArgumentsError(f"probability threshold must be a number, got {prob_thresh!r}")
    if not 0.0 <= float(prob_thresh) <= 1.0:
        raise InvalidArgumentsError(f"probability threshold must lie in [0, 1], got {prob_thresh}")
    if options.method != method:
        raise InvalidArgumentsError(
            f"Mismatch in method in the options: {options.method!r} vs {method!r}"
        )
    if options.bounded_set is None and system.disturbance is None:
        raise InvalidArgumentsError("system has no stochastic disturbance and no bounded set was given")


def _directions(system, options: LagrangianOptions) -> DirectionVectorSet:
    lifted_dim = system.state_dim + system.input_dim
    if options.directions is not None:
        options.directions.require_dim(lifted_dim, "lifted direction vectors")
        return options.directions
    restriction = None
    if options.affine_restriction is not None:
        Ae = np.atleast_2d(np.asarray(options.affine_restriction, dtype=float))
        if Ae.shape[1] != system.state_dim:
            raise InvalidArgumentsError(
                f"affine restriction must have {system.state_dim} columns, got {Ae.shape[1]}"
            )
        restriction = np.hstack([Ae, np.zeros((Ae.shape[0], system.input_dim))])
    return spread_directions(options.n_directions, lifted_dim, affine_restriction=restriction)


def sreach_set_lag(
    method: str,
    system,
    prob_thresh: float,
    safety_tube: Tube,
    options: Optional[LagrangianOptions] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> LagrangianResult:
    """
    Approximate stochastic reach set using Lagrangian methods.

    Parameters
    ----------
    method : {"lag-under", "lag-over"}
    system : LtiSystem or LtvSystem
        System with a Gaussian disturbance (or pass ``options.bounded_set``).
    prob_thresh : float
        Probability threshold in [0, 1].
    safety_tube : Tube
    options : LagrangianOptions, optional
        Defaults to ``LagrangianOptions(method=method)``.
    diagnostics : Diagnostics, optional
        Sink for advisories; a fresh one is used if omitted.

    Returns
    -------
    LagrangianResult

    Raises
    ------
    InvalidArgumentsError
        Unknown method, options mismatch, bad probability, tube or system.
    InternalInconsistencyError
        Fatal solver outcome during the recursion.
    """
    if options is None:
        options = LagrangianOptions(method=method) if method in METHODS else LagrangianOptions()
    _validate(method, system, prob_thresh, safety_tube, options)
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    prob_thresh = float(prob_thresh)
    horizon = safety_tube.horizon

    if horizon == 0 or prob_thresh == 0:
        return LagrangianResult(
            approx_set=safety_tube[0],
            effective_tube=safety_tube,
            method=method,
            prob_thresh=prob_thresh,
            diagnostics=diagnostics.advisories,
        )

    if options.verbose:
        logger.info("Computing Lagrangian %s approximation", method.split("-")[1])

    level = disturbance_level(method, prob_thresh, horizon)
    if options.bounded_set is not None:
        bounded = options.bounded_set
    else:
        bounded = bounded_disturbance_set(system.disturbance, level, method=options.bound_set_method)

    match method:
        case "lag-under":
            boundary_solver = BoundaryPointSolver(
                solver=options.ray_solver, diagnostics=diagnostics, max_workers=options.max_workers
            )
            rec = lagrangian_underapprox(
                system,
                safety_tube,
                bounded,
                _directions(system, options),
                boundary_solver=boundary_solver,
                diagnostics=diagnostics,
                max_workers=options.max_workers,
                record_boundary_data=options.record_boundary_data,
                verbose=options.verbose,
            )
        case "lag-over":
            rec = lagrangian_overapprox(
                system,
                safety_tube,
                bounded,
                diagnostics=diagnostics,
                max_workers=options.max_workers,
                verbose=options.verbose,
            )
        case _:
            raise InternalInconsistencyError(f"Unhandled method: {method}")

    return LagrangianResult(
        approx_set=rec.approx_set,
        effective_tube=rec.effective_tube,
        method=method,
        prob_thresh=prob_thresh,
        boundary_data=rec.boundary_data,
        diagnostics=diagnostics.advisories,
        disturbance_level=level,
        bounded_set=bounded,
    )
