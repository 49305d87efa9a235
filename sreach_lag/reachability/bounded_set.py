"""
Probability level -> bounded disturbance set.

The Lagrangian method replaces the stochastic disturbance by a bounded set
that captures it with a prescribed probability. For a Gaussian w ~ N(mu, S):

- ``ellipsoid``: {w : (w - mu)^T S^{-1} (w - mu) <= chi2.ppf(theta, d)},
  which holds exactly probability theta.
- ``box``: axis-aligned box with per-axis level theta^(1/d); for a diagonal
  covariance the axes are independent so the box holds probability theta.
"""

from __future__ import annotations

import numpy as np
from scipy.stats import chi2, norm

from sreach_lag.dynamics.disturbance import GaussianDisturbance
from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.support_function import Ellipsoid

BOUND_SET_METHODS = ("ellipsoid", "box")


def bounded_disturbance_set(disturbance: GaussianDisturbance, theta: float, method: str = "ellipsoid"):
    """
    Bounded set containing the disturbance with probability ``theta``.

    Parameters
    ----------
    disturbance : GaussianDisturbance
    theta : float
        Probability level in [0, 1). A level of 0 gives the single point
        ``mean``.
    method : {"ellipsoid", "box"}

    Returns
    -------
    Ellipsoid or ConvexSet

    Raises
    ------
    InvalidArgumentsError
        Unknown method, theta outside [0, 1), or a non-diagonal covariance
        with ``method="box"``.
    """
    if not isinstance(disturbance, GaussianDisturbance):
        raise InvalidArgumentsError(
            f"bounded sets are available for Gaussian disturbances only, got {type(disturbance).__name__}"
        )
    if not 0.0 <= theta < 1.0:
        raise InvalidArgumentsError(
            f"probability level must lie in [0, 1), got {theta}; level 1 needs an unbounded set"
        )
    d = disturbance.dimension
    mean = disturbance.mean

    if method == "ellipsoid":
        radius = float(np.sqrt(chi2.ppf(theta, d)))
        return Ellipsoid.from_covariance(mean, disturbance.covariance, radius)

    if method == "box":
        if not disturbance.is_diagonal:
            raise InvalidArgumentsError("box bounded sets need a diagonal covariance")
        axis_level = theta ** (1.0 / d)
        half_width = norm.ppf(0.5 * (1.0 + axis_level)) * np.sqrt(np.diag(disturbance.covariance))
        if np.all(half_width == 0):
            return ConvexSet(V=mean.reshape(1, -1))
        return ConvexSet.from_box(mean - half_width, mean + half_width)

    raise InvalidArgumentsError(f"unknown bound_set_method {method!r}; expected one of {BOUND_SET_METHODS}")
