"""
Linear stochastic dynamics consumed by the reach-set computations.
"""

from .disturbance import GaussianDisturbance
from .linear_system import LtiSystem, LtvSystem

__all__ = [
    "GaussianDisturbance",
    "LtiSystem",
    "LtvSystem",
]
