"""
Sets described only by their support function.

A support-function set never enumerates vertices. It is consumed by
``ConvexSet.minkowski_difference`` where every facet offset is tightened by
the support value along the facet normal, which is exact and avoids vertex
enumeration of the disturbance. This is why ellipsoidal disturbances are
preferred beyond two dimensions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class SupportFunctionSet(ABC):
    """Abstract convex set exposing ``support`` and ``affine_map``."""

    dim: int

    @abstractmethod
    def support(self, directions) -> np.ndarray:
        """
        Support function evaluated row-wise.

        Parameters
        ----------
        directions : array_like, shape (k, dim) or (dim,)

        Returns
        -------
        np.ndarray, shape (k,)
            max_{w in W} d_i . w for every row d_i.
        """
        pass

    @abstractmethod
    def affine_map(self, M) -> "SupportFunctionSet":
        """Image {M w : w in W}."""
        pass


class Ellipsoid(SupportFunctionSet):
    """
    Ellipsoid {c + Q^{1/2} z : ||z|| <= 1}.

    Parameters
    ----------
    center : array_like, shape (n,)
    shape : array_like, shape (n, n)
        Symmetric positive semidefinite shape matrix Q. A zero matrix is a
        single point.
    """

    def __init__(self, center, shape):
        self.center = np.asarray(center, dtype=float).ravel()
        shape = np.atleast_2d(np.asarray(shape, dtype=float))
        n = self.center.size
        if shape.shape != (n, n):
            raise ValueError(f"shape matrix must be {n}x{n}, got {shape.shape}")
        shape = 0.5 * (shape + shape.T)
        if np.min(np.linalg.eigvalsh(shape)) < -1e-10 * max(1.0, np.abs(shape).max()):
            raise ValueError("shape matrix must be positive semidefinite")
        self.shape = shape
        self.dim = n

    @classmethod
    def from_covariance(cls, mean, covariance, radius: float) -> "Ellipsoid":
        """{w : (w - mean)^T covariance^{-1} (w - mean) <= radius^2}."""
        return cls(mean, radius ** 2 * np.atleast_2d(np.asarray(covariance, dtype=float)))

    def support(self, directions) -> np.ndarray:
        D = np.atleast_2d(np.asarray(directions, dtype=float))
        if D.shape[1] != self.dim:
            raise ValueError(f"directions must have {self.dim} columns, got {D.shape[1]}")
        quad = np.einsum("ij,jk,ik->i", D, self.shape, D)
        return D @ self.center + np.sqrt(np.maximum(quad, 0.0))

    def affine_map(self, M) -> "Ellipsoid":
        M = np.atleast_2d(np.asarray(M, dtype=float))
        if M.shape[1] != self.dim:
            raise ValueError(f"map must have {self.dim} columns, got {M.shape[1]}")
        return Ellipsoid(M @ self.center, M @ self.shape @ M.T)

    def contains_point(self, x, tol: float = 1e-9) -> bool:
        x = np.asarray(x, dtype=float).ravel() - self.center
        # pseudo-inverse handles degenerate shapes
        Qp = np.linalg.pinv(self.shape)
        if np.linalg.norm(self.shape @ Qp @ x - x) > 1e-7 * max(1.0, np.linalg.norm(x)):
            return False
        return float(x @ Qp @ x) <= 1.0 + tol

    def __repr__(self) -> str:
        return f"Ellipsoid(dim={self.dim}, center={self.center.tolist()})"
