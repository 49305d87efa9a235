"""Stochastic disturbance descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from sreach_lag.exceptions import InvalidArgumentsError


@dataclass
class GaussianDisturbance:
    """
    Gaussian disturbance: w ~ N(mean, covariance).

    Attributes
    ----------
    covariance : np.ndarray
        Covariance matrix (n x n for n-dimensional disturbance)
    mean : np.ndarray
        Mean vector, zero by default
    """

    covariance: np.ndarray
    mean: np.ndarray = field(default=None)

    def __post_init__(self):
        self.covariance = np.atleast_2d(np.asarray(self.covariance, dtype=float))
        if self.covariance.shape[0] != self.covariance.shape[1]:
            raise InvalidArgumentsError(
                f"Covariance must be square, got shape {self.covariance.shape}"
            )
        if not np.allclose(self.covariance, self.covariance.T):
            raise InvalidArgumentsError("Covariance must be symmetric")
        if np.min(np.linalg.eigvalsh(self.covariance)) < -1e-12:
            raise InvalidArgumentsError("Covariance must be positive semidefinite")
        if self.mean is None:
            self.mean = np.zeros(self.dimension)
        self.mean = np.asarray(self.mean, dtype=float).ravel()
        if self.mean.size != self.dimension:
            raise InvalidArgumentsError(
                f"Mean has {self.mean.size} entries, covariance is {self.dimension}x{self.dimension}"
            )

    @property
    def dimension(self) -> int:
        """Dimension of the disturbance."""
        return self.covariance.shape[0]

    @property
    def is_diagonal(self) -> bool:
        return np.allclose(self.covariance, np.diag(np.diag(self.covariance)))
