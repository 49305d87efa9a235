"""
Dual-represented convex polytopes.

A ``ConvexSet`` stores a facet form

    A x <= b,   Ae x == be

and/or a vertex form (rows of ``V`` are points). Whichever form is missing is
computed on first access and memoized on the instance. Intersections and
Minkowski differences are cheap in facet form, Minkowski sums and projections
in vertex form; the backward recursion needs all of them, which is why the
conversion cost dominates beyond roughly four dimensions.

Conversions are rank aware. Point sets lying in a proper affine subspace give
equality rows, and facet sets with equality rows (explicit or implicit) are
enumerated inside the corresponding null space, so flat sets survive a round
trip instead of failing in qhull.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.linalg import null_space
from scipy.spatial import ConvexHull, HalfspaceIntersection, QhullError

from sreach_lag.exceptions import GeometryError, InvalidArgumentsError
from sreach_lag.geometry.support_function import SupportFunctionSet
from sreach_lag.solvers import ConvexSolver, LinearProgram, SolverStatus, default_geometry_solver

RANK_TOL = 1e-7
FEAS_TOL = 1e-7


class ConvexSet:
    """
    Convex polytope with facet and vertex representations.

    Parameters
    ----------
    A, b : array_like, optional
        Inequalities A x <= b.
    Ae, be : array_like, optional
        Equalities Ae x == be.
    V : array_like, optional
        Points (one per row) whose convex hull is the set.
    dim : int, optional
        Ambient dimension; needed only when every array is empty.

    Notes
    -----
    Instances are treated as immutable. Every operation returns a new set.
    """

    def __init__(self, A=None, b=None, Ae=None, be=None, V=None, dim: Optional[int] = None):
        self._A = self._b = self._Ae = self._be = None
        self._V = None
        self._empty: Optional[bool] = None

        if V is not None:
            V = np.asarray(V, dtype=float)
            if V.ndim == 1:
                V = V.reshape(1, -1) if V.size else V.reshape(0, dim or 0)
            if dim is None:
                dim = V.shape[1]
            self._V = V.reshape(-1, dim)
            if self._V.shape[0] == 0:
                self._empty = True

        if A is not None or Ae is not None:
            if dim is None:
                dim = np.atleast_2d(A if A is not None and np.size(A) else Ae).shape[1]
            self._A, self._b = _block(A, b, dim, "A")
            self._Ae, self._be = _block(Ae, be, dim, "Ae")

        if self._V is None and self._A is None:
            raise InvalidArgumentsError("ConvexSet needs a facet or a vertex representation")
        if dim is None or dim < 1:
            raise InvalidArgumentsError("ConvexSet dimension must be at least 1")
        self._dim = int(dim)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_facets(cls, A, b, Ae=None, be=None) -> "ConvexSet":
        return cls(A=A, b=b, Ae=Ae, be=be)

    @classmethod
    def from_vertices(cls, V) -> "ConvexSet":
        return cls(V=V)

    @classmethod
    def from_box(cls, lower, upper) -> "ConvexSet":
        """Axis-aligned box lower <= x <= upper (scalars broadcast)."""
        lower = np.atleast_1d(np.asarray(lower, dtype=float))
        upper = np.atleast_1d(np.asarray(upper, dtype=float))
        lower, upper = np.broadcast_arrays(lower, upper)
        if np.any(lower > upper):
            raise InvalidArgumentsError(f"box lower bound {lower} exceeds upper bound {upper}")
        n = lower.size
        eye = np.eye(n)
        return cls(A=np.vstack([eye, -eye]), b=np.concatenate([upper, -lower]))

    @classmethod
    def empty(cls, dim: int) -> "ConvexSet":
        A = np.zeros((2, dim))
        A[0, 0], A[1, 0] = 1.0, -1.0
        out = cls(A=A, b=np.array([-1.0, -1.0]), V=np.zeros((0, dim)), dim=dim)
        out._empty = True
        return out

    # ------------------------------------------------------------------
    # Representations
    # ------------------------------------------------------------------
    @property
    def dim(self) -> int:
        return self._dim

    @property
    def has_facets(self) -> bool:
        return self._A is not None

    @property
    def has_vertices(self) -> bool:
        return self._V is not None

    @property
    def A(self) -> np.ndarray:
        self._ensure_facets()
        return self._A

    @property
    def b(self) -> np.ndarray:
        self._ensure_facets()
        return self._b

    @property
    def Ae(self) -> np.ndarray:
        self._ensure_facets()
        return self._Ae

    @property
    def be(self) -> np.ndarray:
        self._ensure_facets()
        return self._be

    @property
    def V(self) -> np.ndarray:
        self._ensure_vertices()
        return self._V

    @property
    def n_vertices(self) -> int:
        return self.V.shape[0]

    def _ensure_facets(self):
        if self._A is None:
            _, self._A, self._b, self._Ae, self._be = _hull(self._V, self._dim)

    def _ensure_vertices(self):
        if self._V is None:
            self._V = _enumerate_vertices(self._A, self._b, self._Ae, self._be)
            self._empty = self._V.shape[0] == 0

    def to_facets(self) -> "ConvexSet":
        """Return a copy carrying a (recomputed, where needed) facet form."""
        return ConvexSet(A=self.A, b=self.b, Ae=self.Ae, be=self.be, V=self._V, dim=self._dim)

    def to_vertices(self) -> "ConvexSet":
        """Return a copy carrying the extreme points as vertex form."""
        V = self.V
        if V.shape[0]:
            V = _hull(V, self._dim)[0]
        return ConvexSet(A=self._A, b=self._b, Ae=self._Ae, be=self._be, V=V, dim=self._dim)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_empty(self, solver: Optional[ConvexSolver] = None) -> bool:
        if self._empty is None:
            if self._V is not None:
                self._empty = self._V.shape[0] == 0
            else:
                self._empty = _chebyshev(self._A, self._b, self._Ae, self._be, solver)[0] == SolverStatus.INFEASIBLE
        return self._empty

    def chebyshev_center(self, solver: Optional[ConvexSolver] = None) -> Tuple[np.ndarray, float]:
        """
        Center and radius of the largest ball inscribed in the set.

        For sets with equality rows the ball is taken inside their affine hull.
        When several balls attain the radius, the center is the central one
        (see ``_central_chebyshev``), so the result does not depend on which
        optimal vertex the LP solver returns.

        Raises
        ------
        GeometryError
            If the set is empty or the radius is unbounded.
        """
        status, center, radius = _central_chebyshev(self.A, self.b, self.Ae, self.be, solver)
        if status == SolverStatus.INFEASIBLE:
            raise GeometryError("Chebyshev center of an empty set")
        if status == SolverStatus.UNBOUNDED:
            raise GeometryError("Chebyshev center of an unbounded set")
        if not status.is_solved:
            raise GeometryError(f"Chebyshev center LP failed with status {status.value}")
        return center, radius

    def support(self, directions, solver: Optional[ConvexSolver] = None) -> np.ndarray:
        """
        Support function along each row of ``directions``.

        Uses the vertex form when it is already available, an LP per row
        otherwise. Empty sets give -inf, unbounded directions +inf.
        """
        D = np.atleast_2d(np.asarray(directions, dtype=float))
        if D.shape[1] != self._dim:
            raise InvalidArgumentsError(f"directions must have {self._dim} columns, got {D.shape[1]}")
        if self._V is not None:
            if self._V.shape[0] == 0:
                return np.full(D.shape[0], -np.inf)
            return (D @ self._V.T).max(axis=1)
        if self._empty:
            return np.full(D.shape[0], -np.inf)

        solver = solver or default_geometry_solver()
        values = np.empty(D.shape[0])
        for i, d in enumerate(D):
            res = solver.solve(LinearProgram(-d, self._A, self._b, self._Ae, self._be))
            if res.status == SolverStatus.INFEASIBLE:
                self._empty = True
                return np.full(D.shape[0], -np.inf)
            if res.status == SolverStatus.UNBOUNDED:
                values[i] = np.inf
            elif res.status.is_solved:
                values[i] = -res.value
            else:
                raise GeometryError(f"support LP failed with status {res.status.value}")
        return values

    def contains_point(self, x, tol: float = FEAS_TOL) -> bool:
        x = np.asarray(x, dtype=float).ravel()
        if np.any(self.A @ x > self.b + tol):
            return False
        return bool(np.all(np.abs(self.Ae @ x - self.be) <= tol))

    def contains(self, other: "ConvexSet", tol: float = 1e-6) -> bool:
        """True if ``other`` is a subset of this set (up to ``tol``)."""
        if other.dim != self._dim:
            raise InvalidArgumentsError(f"dimension mismatch: {self._dim} vs {other.dim}")
        if other.is_empty():
            return True
        if self.is_empty():
            return False
        if self.A.shape[0] and np.any(other.support(self.A) > self.b + tol):
            return False
        if self.Ae.shape[0]:
            if np.any(other.support(self.Ae) > self.be + tol):
                return False
            if np.any(other.support(-self.Ae) > -self.be + tol):
                return False
        return True

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Tightest axis-aligned box (lower, upper)."""
        eye = np.eye(self._dim)
        return -self.support(-eye), self.support(eye)

    def volume(self) -> float:
        """Lebesgue measure in the ambient dimension (0 for flat or empty sets)."""
        if self.is_empty():
            return 0.0
        V = self.V
        if self._dim == 1:
            return float(V.max() - V.min())
        if np.linalg.matrix_rank(V - V.mean(axis=0), tol=RANK_TOL) < self._dim:
            return 0.0
        return float(ConvexHull(V).volume)

    # ------------------------------------------------------------------
    # Set algebra
    # ------------------------------------------------------------------
    def intersect(self, other: "ConvexSet") -> "ConvexSet":
        """Facet concatenation."""
        self._check_dim(other)
        if self._empty or other._empty:
            return ConvexSet.empty(self._dim)
        return ConvexSet(
            A=np.vstack([self.A, other.A]),
            b=np.concatenate([self.b, other.b]),
            Ae=np.vstack([self.Ae, other.Ae]),
            be=np.concatenate([self.be, other.be]),
            dim=self._dim,
        )

    def minkowski_difference(self, other, tol: float = FEAS_TOL) -> "ConvexSet":
        """
        Pontryagin difference {x : x + w in self for all w in other}.

        Every facet offset is tightened by the support value of ``other`` along
        the facet normal. Equality rows survive only if ``other`` is flat along
        them.
        """
        match other:
            case SupportFunctionSet():
                if other.dim != self._dim:
                    raise InvalidArgumentsError(f"dimension mismatch: {self._dim} vs {other.dim}")
                support = other.support
            case ConvexSet():
                self._check_dim(other)
                if other.is_empty():
                    return ConvexSet(A=self.A, b=self.b, Ae=self.Ae, be=self.be, dim=self._dim)
                support = other.support
            case _:
                raise InvalidArgumentsError(
                    f"cannot subtract {type(other).__name__}; expected ConvexSet or SupportFunctionSet"
                )

        shift = support(self.A) if self.A.shape[0] else np.zeros(0)
        if not np.all(np.isfinite(shift)):
            raise InvalidArgumentsError("Minkowski difference requires a bounded subtrahend")
        be = self.be
        if self.Ae.shape[0]:
            hi = support(self.Ae)
            lo = -support(-self.Ae)
            if np.any(hi - lo > tol):
                return ConvexSet.empty(self._dim)
            be = self.be - hi
        return ConvexSet(A=self.A, b=self.b - shift, Ae=self.Ae, be=be, dim=self._dim)

    def minkowski_sum(self, other) -> "ConvexSet":
        """
        Minkowski sum.

        Exact (hull of pairwise vertex sums) for polytopes. For
        support-function sets the facet offsets are relaxed by the support
        value, which gives a superset of the true sum.
        """
        match other:
            case SupportFunctionSet():
                if other.dim != self._dim:
                    raise InvalidArgumentsError(f"dimension mismatch: {self._dim} vs {other.dim}")
                if self.is_empty():
                    return ConvexSet.empty(self._dim)
                A = np.vstack([self.A, self.Ae, -self.Ae])
                b = np.concatenate([self.b, self.be, -self.be])
                return ConvexSet(A=A, b=b + other.support(A), dim=self._dim)
            case ConvexSet():
                self._check_dim(other)
                if self.is_empty() or other.is_empty():
                    return ConvexSet.empty(self._dim)
                V1 = self.to_vertices().V
                V2 = other.to_vertices().V
                V = (V1[:, None, :] + V2[None, :, :]).reshape(-1, self._dim)
                return ConvexSet(V=V)
            case _:
                raise InvalidArgumentsError(
                    f"cannot add {type(other).__name__}; expected ConvexSet or SupportFunctionSet"
                )

    def affine_map(self, M, offset=None) -> "ConvexSet":
        """Image {M x + offset : x in self}, computed in vertex form."""
        M = np.atleast_2d(np.asarray(M, dtype=float))
        if M.shape[1] != self._dim:
            raise InvalidArgumentsError(f"map must have {self._dim} columns, got {M.shape[1]}")
        if self.is_empty():
            return ConvexSet.empty(M.shape[0])
        V = self.V @ M.T
        if offset is not None:
            V = V + np.asarray(offset, dtype=float).ravel()
        return ConvexSet(V=V, dim=M.shape[0])

    def preimage(self, M, offset=None) -> "ConvexSet":
        """Pullback {z : M z + offset in self}, computed in facet form."""
        M = np.atleast_2d(np.asarray(M, dtype=float))
        if M.shape[0] != self._dim:
            raise InvalidArgumentsError(f"map must have {self._dim} rows, got {M.shape[0]}")
        b, be = self.b, self.be
        if offset is not None:
            offset = np.asarray(offset, dtype=float).ravel()
            b = b - self.A @ offset
            be = be - self.Ae @ offset
        return ConvexSet(A=self.A @ M, b=b, Ae=self.Ae @ M, be=be, dim=M.shape[1])

    def project(self, dims: Sequence[int]) -> "ConvexSet":
        """Projection onto the coordinates ``dims`` (vertex form, then facets)."""
        dims = list(dims)
        if not dims or min(dims) < 0 or max(dims) >= self._dim:
            raise InvalidArgumentsError(f"projection dims {dims} out of range for dimension {self._dim}")
        if self.is_empty():
            return ConvexSet.empty(len(dims))
        out = ConvexSet(V=self.V[:, dims], dim=len(dims))
        out._ensure_facets()
        return out

    def __neg__(self) -> "ConvexSet":
        return self.affine_map(-np.eye(self._dim))

    def _check_dim(self, other: "ConvexSet"):
        if not isinstance(other, ConvexSet):
            raise InvalidArgumentsError(f"expected ConvexSet, got {type(other).__name__}")
        if other.dim != self._dim:
            raise InvalidArgumentsError(f"dimension mismatch: {self._dim} vs {other.dim}")

    def __repr__(self) -> str:
        parts = [f"dim={self._dim}"]
        if self._A is not None:
            parts.append(f"facets={self._A.shape[0]}")
            if self._Ae.shape[0]:
                parts.append(f"equalities={self._Ae.shape[0]}")
        if self._V is not None:
            parts.append(f"vertices={self._V.shape[0]}")
        return f"ConvexSet({', '.join(parts)})"


# ----------------------------------------------------------------------
# Representation conversion
# ----------------------------------------------------------------------
def _block(A, b, dim, name):
    if A is None or np.size(A) == 0:
        return np.zeros((0, dim)), np.zeros(0)
    A = np.atleast_2d(np.asarray(A, dtype=float))
    b = np.atleast_1d(np.asarray(b, dtype=float)).ravel()
    if A.shape[1] != dim:
        raise InvalidArgumentsError(f"{name} has {A.shape[1]} columns, expected {dim}")
    if A.shape[0] != b.size:
        raise InvalidArgumentsError(f"{name} has {A.shape[0]} rows but right-hand side has {b.size}")
    return A, b


def _unique_rows(X, tol=1e-9):
    if X.shape[0] == 0:
        return X
    scale = max(1.0, float(np.abs(X).max()))
    _, idx = np.unique(np.round(X / (tol * scale)), axis=0, return_index=True)
    return X[np.sort(idx)]


def _hull(V, dim):
    """
    Extreme points and facet form of conv(V).

    Returns
    -------
    (V_ext, A, b, Ae, be)
    """
    V = np.asarray(V, dtype=float).reshape(-1, dim)
    if V.shape[0] == 0:
        empty = ConvexSet.empty(dim)
        return V, empty._A, empty._b, np.zeros((0, dim)), np.zeros(0)

    p0 = V.mean(axis=0)
    X = V - p0
    _, s, Vt = np.linalg.svd(X, full_matrices=True)
    scale = max(1.0, float(np.abs(V).max()))
    rank = int(np.sum(s > RANK_TOL * scale))
    basis = Vt[:rank].T
    normal = Vt[rank:]
    coords = X @ basis

    if rank == 0:
        V_ext = p0.reshape(1, -1)
        A_loc, b_loc = np.zeros((0, 0)), np.zeros(0)
    elif rank == 1:
        lo, hi = int(np.argmin(coords[:, 0])), int(np.argmax(coords[:, 0]))
        V_ext = V[[lo, hi]]
        A_loc = np.array([[1.0], [-1.0]])
        b_loc = np.array([coords[hi, 0], -coords[lo, 0]])
    else:
        try:
            hull = ConvexHull(coords)
        except QhullError as exc:
            raise GeometryError(f"convex hull failed: {exc}") from exc
        V_ext = V[hull.vertices]
        eq = _unique_rows(hull.equations)
        A_loc, b_loc = eq[:, :-1], -eq[:, -1]

    A = A_loc @ basis.T if rank else np.zeros((0, dim))
    b = b_loc + (A @ p0 if rank else np.zeros(0))
    Ae = normal
    be = normal @ p0
    return V_ext, A, b, Ae, be


def _chebyshev(A, b, Ae, be, solver=None):
    """
    Chebyshev center inside the affine hull of the equalities.

    Returns (status, center, radius).
    """
    n = A.shape[1]
    solver = solver or default_geometry_solver()
    norms, radius_cap = _ball_norms(A, Ae)
    c = np.zeros(n + 1)
    c[-1] = -1.0
    A_ub = np.hstack([A, norms[:, None]])
    A_eq = np.hstack([Ae, np.zeros((Ae.shape[0], 1))])
    bounds = [(None, None)] * n + [(0.0, radius_cap)]
    res = solver.solve(LinearProgram(c, A_ub, b, A_eq, be, bounds=bounds))
    if not res.status.is_solved:
        return res.status, None, None
    return res.status, res.x[:n], float(res.x[n])


def _ball_norms(A, Ae):
    """Row norms measured inside the null space of ``Ae``, and the radius cap."""
    if not Ae.shape[0]:
        return np.linalg.norm(A, axis=1), None
    Z = null_space(Ae)
    # a single point: the inscribed ball degenerates to radius zero
    radius_cap = 0.0 if Z.shape[1] == 0 else None
    return np.linalg.norm(A @ Z, axis=1), radius_cap


def _central_chebyshev(A, b, Ae, be, solver=None):
    """
    Chebyshev center made unique.

    The centers of all maximal inscribed balls form a lower dimensional
    polytope. Its implicit equalities are promoted and its own Chebyshev
    center is taken inside that affine hull, until the optimal center is a
    single point. Symmetric sets get their center of symmetry.

    Returns (status, center, radius) where radius is the inscribed radius of
    the original set.
    """
    status, center, radius = _chebyshev(A, b, Ae, be, solver)
    if not status.is_solved:
        return status, center, radius
    first_radius = radius
    for _ in range(A.shape[1]):
        if radius <= FEAS_TOL or not A.shape[0]:
            break
        norms, _ = _ball_norms(A, Ae)
        optimal_b = b - norms * radius
        implicit = _implicit_equalities(A, optimal_b, solver, Ae, be)
        if not implicit.size:
            break
        keep = np.setdiff1d(np.arange(A.shape[0]), implicit)
        Ae = np.vstack([Ae, A[implicit]])
        be = np.concatenate([be, A[implicit] @ center])
        A, b = A[keep], optimal_b[keep]
        inner_status, inner_center, inner_radius = _chebyshev(A, b, Ae, be, solver)
        if not inner_status.is_solved:
            break
        center, radius = inner_center, inner_radius
    return status, center, first_radius


def _is_bounded(Ar, solver=None):
    """A polyhedron {z : Ar z <= br} (nonempty) is bounded iff its rows positively span."""
    m, k = Ar.shape
    if m == 0 or np.linalg.matrix_rank(Ar) < k:
        return False
    solver = solver or default_geometry_solver()
    res = solver.solve(LinearProgram(np.zeros(m), A_eq=Ar.T, b_eq=np.zeros(k), bounds=[(1.0, None)] * m))
    return res.status.is_solved


def _enumerate_vertices(A, b, Ae, be, solver=None, _depth=0):
    n = A.shape[1]
    if Ae.shape[0]:
        x0, *_ = np.linalg.lstsq(Ae, be, rcond=None)
        if np.linalg.norm(Ae @ x0 - be) > FEAS_TOL * max(1.0, np.linalg.norm(be)):
            return np.zeros((0, n))
        Z = null_space(Ae)
    else:
        x0, Z = np.zeros(n), np.eye(n)

    k = Z.shape[1]
    Ar = A @ Z
    br = b - A @ x0

    if k == 0:
        if np.all(br >= -FEAS_TOL):
            return x0.reshape(1, -1)
        return np.zeros((0, n))

    if k == 1:
        a = Ar[:, 0]
        flat = np.abs(a) <= RANK_TOL
        if np.any(br[flat] < -FEAS_TOL):
            return np.zeros((0, n))
        pos, neg = a > RANK_TOL, a < -RANK_TOL
        if not pos.any() or not neg.any():
            raise GeometryError("vertex enumeration of an unbounded set")
        hi = np.min(br[pos] / a[pos])
        lo = np.max(br[neg] / a[neg])
        if lo > hi + FEAS_TOL:
            return np.zeros((0, n))
        z = np.array([lo, hi]) if hi - lo > FEAS_TOL else np.array([0.5 * (lo + hi)])
        return x0 + np.outer(z, Z[:, 0])

    status, center, radius = _chebyshev(Ar, br, np.zeros((0, k)), np.zeros(0), solver)
    if status == SolverStatus.INFEASIBLE:
        return np.zeros((0, n))
    if status == SolverStatus.UNBOUNDED or not _is_bounded(Ar, solver):
        raise GeometryError("vertex enumeration of an unbounded set")
    if not status.is_solved:
        raise GeometryError(f"Chebyshev center LP failed with status {status.value}")

    if radius <= FEAS_TOL:
        # Flat set: promote implicit equalities and enumerate in their null space.
        if _depth > n:
            raise GeometryError("could not resolve implicit equalities")
        implicit = _implicit_equalities(Ar, br, solver)
        if not implicit.size:
            raise GeometryError("degenerate facet representation")
        keep = np.setdiff1d(np.arange(A.shape[0]), implicit)
        return _enumerate_vertices(
            A[keep], b[keep],
            np.vstack([Ae, A[implicit]]), np.concatenate([be, b[implicit]]),
            solver, _depth + 1,
        )

    try:
        hs = HalfspaceIntersection(np.hstack([Ar, -br[:, None]]), center)
    except QhullError as exc:
        raise GeometryError(f"halfspace intersection failed: {exc}") from exc
    Zv = hs.intersections
    if not np.all(np.isfinite(Zv)):
        raise GeometryError("vertex enumeration of an unbounded set")
    return x0 + _unique_rows(Zv) @ Z.T


def _implicit_equalities(Ar, br, solver, Ae=None, be=None):
    rows = []
    solver = solver or default_geometry_solver()
    for i, a in enumerate(Ar):
        res = solver.solve(LinearProgram(a, Ar, br, Ae, be))
        if res.status.is_solved and res.value >= br[i] - FEAS_TOL * max(1.0, abs(br[i])):
            rows.append(i)
    return np.array(rows, dtype=int)
