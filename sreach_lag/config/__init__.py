"""
sreach_lag Configuration Module - YAML-based problem descriptions.

Example usage:
    from sreach_lag.config import ProblemSpec

    spec = ProblemSpec.from_yaml("problem.yaml")
    result = spec.solve()
"""

from sreach_lag.config.problem import ProblemSpec, SetSpec, SystemSpec, TubeSpec

__all__ = [
    "ProblemSpec",
    "SetSpec",
    "SystemSpec",
    "TubeSpec",
]
