"""Lagrangian backward-reachability engine."""

from .boundary import BoundaryPoint, BoundaryPointSolver
from .backward_step import BackwardReachStep, OverapproxStep, StepResult
from .bounded_set import bounded_disturbance_set
from .recursion import RecursionResult, lagrangian_underapprox, lagrangian_overapprox
from .lagrangian import (
    LagrangianOptions,
    LagrangianResult,
    disturbance_level,
    sreach_set_lag,
)

__all__ = [
    "BoundaryPoint",
    "BoundaryPointSolver",
    "BackwardReachStep",
    "OverapproxStep",
    "StepResult",
    "bounded_disturbance_set",
    "RecursionResult",
    "lagrangian_underapprox",
    "lagrangian_overapprox",
    "LagrangianOptions",
    "LagrangianResult",
    "disturbance_level",
    "sreach_set_lag",
]
