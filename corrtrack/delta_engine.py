"""
CorrTrack Delta Engine
======================

Computes how every tracked correlation count changes when a single element
of the grid is rewritten, without touching anything outside the element's
one-dimensional neighbourhood along each tracked direction.

For a write at coordinate c and a lag limit L, only terms whose window
contains c can change:

- S2: the pairs (c, c + r) and (c - r, c)
- L2: the segments of r + 1 elements containing c, counted from the run of
  the phase around c
- SS: pairs of boundaries where one boundary is the edge (c - 1, c) or (c, c + 1)
- SV: the same edges paired with void r steps ahead, and the boundary r
  steps behind c paired with c itself

All of these lie within L + 1 steps of c, so the work per direction is
O(L) regardless of the grid size. Grid elements are read lazily and
counted, which makes the cost observable in tests.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .descriptors import DescriptorKind, DescriptorRegistry
from .directions import Vector, step
from .grid import Coord, GridStore

_MISSING = object()


class Window:
    """
    Lazily read neighbourhood of ``center`` along one direction.

    ``value(t)`` is the label ``t`` steps away before the write, ``value(t,
    True)`` after it; both are None outside a non-periodic grid.
    """

    __slots__ = ("_engine", "_center", "_vector", "_old", "_new", "_coords", "_values")

    def __init__(self, engine: "DeltaEngine", center: Coord, vector: Vector, old: Any, new: Any):
        self._engine = engine
        self._center = center
        self._vector = vector
        self._old = old
        self._new = new
        self._coords: Dict[int, Optional[Coord]] = {0: center}
        self._values: Dict[int, Any] = {0: old}

    def coord(self, t: int) -> Optional[Coord]:
        coord = self._coords.get(t, _MISSING)
        if coord is _MISSING:
            engine = self._engine
            coord = step(self._center, self._vector, t, engine.grid.shape, engine.periodic)
            self._coords[t] = coord
        return coord

    def value(self, t: int, after: bool = False) -> Any:
        coord = self.coord(t)
        if coord is None:
            return None
        if coord == self._center:
            return self._new if after else self._old
        label = self._values.get(t, _MISSING)
        if label is _MISSING:
            label = self._engine._read(coord)
            self._values[t] = label
        return label

    def inside(self, t: int, phase: Any, after: bool = False) -> bool:
        label = self.value(t, after)
        return label is not None and label == phase

    def edge(self, t: int, phase: Any, after: bool = False) -> bool:
        """Whether a boundary of ``phase`` lies between offsets t and t + 1."""
        a = self.value(t, after)
        b = self.value(t + 1, after)
        if a is None or b is None:
            return False
        return (a == phase) != (b == phase)

    def void(self, t: int, phase: Any, after: bool = False) -> bool:
        label = self.value(t, after)
        return label is not None and label != phase

    def run(self, phase: Any, direction: int, limit: int) -> int:
        """Length of the run of ``phase`` next to the centre, at most ``limit``."""
        n = 0
        while n < limit and self.inside(direction * (n + 1), phase):
            n += 1
        return n


# ============================================================================
# PER-KIND DELTA RULES
# ============================================================================


def _s2_delta(window: Window, phase: Any, sign: int, length: int) -> np.ndarray:
    out = np.zeros(length, dtype=np.int64)
    out[0] = sign
    for r in range(1, length):
        out[r] = sign * (int(window.inside(r, phase)) + int(window.inside(-r, phase)))
    return out


def _l2_delta(window: Window, phase: Any, sign: int, length: int) -> np.ndarray:
    left = window.run(phase, -1, length - 1)
    right = window.run(phase, 1, length - 1)
    out = np.zeros(length, dtype=np.int64)
    for r in range(length):
        out[r] = sign * max(0, min(left, r) + min(right, r) - r + 1)
    return out


def _terms_delta(
    window: Window,
    starts: Callable[[int], Tuple[int, ...]],
    term: Callable[[Window, int, int, bool], bool],
    length: int,
) -> np.ndarray:
    out = np.zeros(length, dtype=np.int64)
    for r in range(length):
        seen = set()
        for t in starts(r):
            coord = window.coord(t)
            if coord is None or coord in seen:
                continue
            seen.add(coord)
            out[r] += int(term(window, t, r, True)) - int(term(window, t, r, False))
    return out


def _ss_delta(window: Window, phase: Any, sign: int, length: int) -> np.ndarray:
    return _terms_delta(
        window,
        lambda r: (-1, 0, -1 - r, -r),
        lambda w, t, r, after: w.edge(t, phase, after) and w.edge(t + r, phase, after),
        length,
    )


def _sv_delta(window: Window, phase: Any, sign: int, length: int) -> np.ndarray:
    return _terms_delta(
        window,
        lambda r: (-1, 0, -r),
        lambda w, t, r, after: w.edge(t, phase, after) and w.void(t + r, phase, after),
        length,
    )


_RULES = {
    DescriptorKind.S2: _s2_delta,
    DescriptorKind.L2: _l2_delta,
    DescriptorKind.SS: _ss_delta,
    DescriptorKind.SV: _sv_delta,
}


# ============================================================================
# ENGINE
# ============================================================================


class DeltaEngine:
    """
    Computes direction x descriptor x lag count deltas for single writes.

    Args:
        grid: Store the neighbourhood is read from (in its pre-write state)
        registry: Tracked descriptors
        vectors: Direction step vectors, in buffer order
        periodic: Boundary mode
    """

    def __init__(
        self,
        grid: GridStore,
        registry: DescriptorRegistry,
        vectors: Sequence[Vector],
        periodic: bool,
    ):
        self.grid = grid
        self.registry = registry
        self.vectors: List[Vector] = list(vectors)
        self.periodic = periodic
        self.last_reads = 0
        self.total_reads = 0

    def _read(self, coord: Coord) -> Any:
        self.last_reads += 1
        self.total_reads += 1
        return self.grid.peek(coord)

    def compute(self, coord: Coord, old: Any, new: Any) -> np.ndarray:
        """
        Deltas that turn the counts for the current grid into the counts for
        the grid with ``coord`` changed from ``old`` to ``new``.

        The grid must still hold ``old`` at ``coord``.
        """
        self.last_reads = 0
        length = self.registry.tracked_length
        delta = np.zeros((len(self.vectors), len(self.registry), length), dtype=np.int64)
        if old == new:
            return delta

        for d, vector in enumerate(self.vectors):
            window = Window(self, coord, vector, old, new)
            for k, data in enumerate(self.registry):
                was, now = old == data.phase, new == data.phase
                if was == now:
                    # Phase indicator unchanged: no term of any kind moves
                    continue
                sign = 1 if now else -1
                delta[d, k] = _RULES[data.kind](window, data.phase, sign, length)
        return delta
