"""
Unit direction vectors for ray shooting.

The direction set is chosen once per invocation and reused at every time
step, so it is built deterministically: evenly spaced angles in the plane,
and in higher dimensions the coordinate axes followed by seeded points spread
over the sphere by a few rounds of Coulomb-style repulsion.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.linalg import null_space

from sreach_lag.exceptions import InvalidArgumentsError

UNIT_TOL = 1e-9


class DirectionVectorSet:
    """
    Fixed collection of unit column vectors.

    Parameters
    ----------
    matrix : array_like, shape (dim, count)
        One direction per column.
    """

    def __init__(self, matrix):
        matrix = np.array(matrix, dtype=float, ndmin=2)
        if matrix.shape[1] == 0:
            raise InvalidArgumentsError("direction set is empty")
        norms = np.linalg.norm(matrix, axis=0)
        if np.any(np.abs(norms - 1.0) > UNIT_TOL):
            raise InvalidArgumentsError("direction vectors must have unit norm")
        self.matrix = matrix
        self.matrix.setflags(write=False)

    @property
    def dim(self) -> int:
        return self.matrix.shape[0]

    @property
    def count(self) -> int:
        return self.matrix.shape[1]

    def __len__(self) -> int:
        return self.count

    def __getitem__(self, index: int) -> np.ndarray:
        return self.matrix[:, index]

    def __iter__(self):
        for i in range(self.count):
            yield self.matrix[:, i]

    def require_dim(self, dim: int, what: str = "direction vectors"):
        if self.dim != dim:
            raise InvalidArgumentsError(f"{what} must be {dim}-dimensional, got {self.dim}")

    def __repr__(self) -> str:
        return f"DirectionVectorSet(dim={self.dim}, count={self.count})"


def spread_directions(
    count: int,
    dim: int,
    affine_restriction=None,
    seed: int = 0,
    n_iterations: int = 100,
) -> DirectionVectorSet:
    """
    Generate ``count`` unit directions spread over the sphere in R^dim.

    Parameters
    ----------
    count : int
        Number of directions. In one dimension only +1 and -1 exist and
        exactly two are returned.
    dim : int
        Ambient dimension.
    affine_restriction : array_like or ConvexSet, optional
        Equality matrix Ae (or a set whose ``Ae`` is used). Directions are
        confined to the null space of Ae so rays stay inside the affine hull
        of interest.
    seed : int
        Seed for the starting points in three or more dimensions.
    n_iterations : int
        Repulsion rounds.

    Returns
    -------
    DirectionVectorSet
    """
    if dim < 1:
        raise InvalidArgumentsError(f"dimension must be positive, got {dim}")
    if count < 2:
        raise InvalidArgumentsError(f"need at least two directions, got {count}")

    if affine_restriction is not None:
        Ae = getattr(affine_restriction, "Ae", affine_restriction)
        Ae = np.atleast_2d(np.asarray(Ae, dtype=float))
        if Ae.shape[1] != dim:
            raise InvalidArgumentsError(f"affine restriction must have {dim} columns, got {Ae.shape[1]}")
        Z = null_space(Ae)
        if Z.shape[1] == 0:
            raise InvalidArgumentsError("affine restriction leaves no free directions")
        sub = spread_directions(count, Z.shape[1], seed=seed, n_iterations=n_iterations)
        return DirectionVectorSet(_normalize(Z @ sub.matrix))

    if dim == 1:
        return DirectionVectorSet(np.array([[1.0, -1.0]]))
    if dim == 2:
        angles = 2 * np.pi * np.arange(count) / count
        return DirectionVectorSet(np.vstack([np.cos(angles), np.sin(angles)]))

    rng = np.random.default_rng(seed)
    if count >= 2 * dim:
        fixed = np.hstack([np.eye(dim), -np.eye(dim)])
    else:
        fixed = np.zeros((dim, 0))
    free = _normalize(rng.standard_normal((dim, count - fixed.shape[1])))
    free = _repel(fixed, free, n_iterations)
    return DirectionVectorSet(np.hstack([fixed, free]))


def _normalize(X):
    return X / np.linalg.norm(X, axis=0, keepdims=True)


def _repel(fixed, free, n_iterations, step=0.1):
    if free.shape[1] == 0:
        return free
    for _ in range(n_iterations):
        points = np.hstack([fixed, free])
        diff = free[:, :, None] - points[:, None, :]
        dist = np.linalg.norm(diff, axis=0)
        # ignore self-interaction
        n_fixed = fixed.shape[1]
        idx = np.arange(free.shape[1])
        dist[idx, n_fixed + idx] = np.inf
        force = (diff / np.maximum(dist, 1e-12) ** 3).sum(axis=2)
        scale = np.abs(force).max()
        if scale == 0:
            break
        free = _normalize(free + step * force / scale)
    return free
