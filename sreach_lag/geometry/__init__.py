"""
Convex set algebra for the Lagrangian recursion.

Polytopes in dual (facet/vertex) form, support-function sets, target tubes
and ray-shooting direction sets.
"""

from .convex_set import ConvexSet
from .support_function import SupportFunctionSet, Ellipsoid
from .tube import Tube
from .directions import DirectionVectorSet, spread_directions

__all__ = [
    "ConvexSet",
    "SupportFunctionSet",
    "Ellipsoid",
    "Tube",
    "DirectionVectorSet",
    "spread_directions",
]
