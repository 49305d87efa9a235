"""Target tubes: one convex set per time step."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet


class Tube(Sequence):
    """
    Immutable, fixed-length sequence of ``ConvexSet`` indexed by time 0..N.

    Parameters
    ----------
    sets : iterable of ConvexSet
        Sets K_0, ..., K_N, all of the same dimension.
    """

    def __init__(self, sets: Iterable[ConvexSet]):
        sets = tuple(sets)
        if not sets:
            raise InvalidArgumentsError("a tube needs at least one set")
        for t, s in enumerate(sets):
            if not isinstance(s, ConvexSet):
                raise InvalidArgumentsError(f"tube element {t} is {type(s).__name__}, expected ConvexSet")
        dims = {s.dim for s in sets}
        if len(dims) != 1:
            raise InvalidArgumentsError(f"tube sets have mixed dimensions {sorted(dims)}")
        self._sets = sets

    @classmethod
    def constant(cls, target: ConvexSet, length: int) -> "Tube":
        """Tube repeating ``target`` ``length`` times (horizon = length - 1)."""
        if length < 1:
            raise InvalidArgumentsError(f"tube length must be positive, got {length}")
        return cls([target] * length)

    @property
    def dim(self) -> int:
        return self._sets[0].dim

    @property
    def horizon(self) -> int:
        return len(self._sets) - 1

    def __len__(self) -> int:
        return len(self._sets)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Tube(self._sets[index])
        return self._sets[index]

    def __iter__(self) -> Iterator[ConvexSet]:
        return iter(self._sets)

    def __repr__(self) -> str:
        return f"Tube(length={len(self)}, dim={self.dim})"
