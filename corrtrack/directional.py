"""
CorrTrack Directional Functions
===============================

From-scratch directional correlation functions of a multi-phase array. They
are the ground truth the tracker is initialized from and validated against;
every call is a full pass over the array.

All functions share the same keywords:

- ``length``: number of lags (0..length-1), defaults to half the smallest extent
- ``directions``: direction tags or step tuples, defaults to the orthogonal axes
- ``periodic``: wrap around the array edges

Passing a :class:`~corrtrack.tracker.CorrelationTracker` instead of an array
returns the values the tracker maintains, without recomputation.

Example:
    data = s2(array, 1, length=10)
    data["x"]        # S2 of phase 1 along the first axis, lags 0..9
    data.mean()      # averaged over directions
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from cachetools import LRUCache, cached

from .descriptors import DescriptorKind, tracked_length
from .directions import Direction, Vector, direction_vector, resolve_directions
from .exceptions import InvalidDirectionError

# ============================================================================
# SHIFTING
# ============================================================================


def shift(a: np.ndarray, vector: Vector, offset: int, periodic: bool) -> np.ndarray:
    """Return ``b`` with ``b[x] = a[x + offset * vector]``, False outside the grid."""
    steps = tuple(v * offset for v in vector)
    if periodic:
        return np.roll(a, tuple(-s for s in steps), axis=tuple(range(a.ndim)))

    out = np.zeros_like(a)
    src = []
    dst = []
    for s, n in zip(steps, a.shape):
        if abs(s) >= n:
            return out
        if s >= 0:
            src.append(slice(s, n))
            dst.append(slice(0, n - s))
        else:
            src.append(slice(0, n + s))
            dst.append(slice(-s, n))
    out[tuple(dst)] = a[tuple(src)]
    return out


def surface(indicator: np.ndarray, vector: Vector, periodic: bool) -> np.ndarray:
    """Phase boundaries crossed between each element and its forward neighbour."""
    inside = shift(np.ones_like(indicator), vector, 1, periodic)
    return (indicator != shift(indicator, vector, 1, periodic)) & inside


# ============================================================================
# COUNTS AND NORMALIZATION
# ============================================================================


def counts(
    kind: DescriptorKind,
    array: np.ndarray,
    phase: Any,
    vector: Vector,
    length: int,
    periodic: bool,
) -> np.ndarray:
    """Unnormalized correlation counts for lags 0..length-1 along one direction."""
    indicator = np.asarray(array == phase, dtype=bool)
    out = np.zeros(length, dtype=np.int64)

    if kind is DescriptorKind.S2:
        for r in range(length):
            out[r] = np.count_nonzero(indicator & shift(indicator, vector, r, periodic))

    elif kind is DescriptorKind.L2:
        segment = indicator.copy()
        for r in range(length):
            if r:
                segment &= shift(indicator, vector, r, periodic)
            out[r] = np.count_nonzero(segment)

    elif kind is DescriptorKind.SS:
        boundary = surface(indicator, vector, periodic)
        for r in range(length):
            out[r] = np.count_nonzero(boundary & shift(boundary, vector, r, periodic))

    elif kind is DescriptorKind.SV:
        boundary = surface(indicator, vector, periodic)
        void = ~indicator
        for r in range(length):
            out[r] = np.count_nonzero(boundary & shift(void, vector, r, periodic))

    else:
        raise ValueError(f"Unknown correlation function kind: {kind!r}")

    return out


def _reach(kind: DescriptorKind, r: int) -> int:
    """Span, in steps, between the first and last element a term at lag r reads."""
    if kind is DescriptorKind.SS:
        return r + 1
    if kind is DescriptorKind.SV:
        return max(r, 1)
    return r


@cached(LRUCache(maxsize=512))
def normalization(
    kind: DescriptorKind,
    shape: Tuple[int, ...],
    vector: Vector,
    length: int,
    periodic: bool,
) -> np.ndarray:
    """Number of admissible start points for each lag (read-only array)."""
    out = np.zeros(length, dtype=np.int64)
    for r in range(length):
        if periodic:
            out[r] = int(np.prod(shape))
        else:
            k = _reach(kind, r)
            out[r] = int(np.prod([max(n - k * abs(v), 0) for n, v in zip(shape, vector)]))
    out.setflags(write=False)
    return out


def normalize(raw: np.ndarray, norm: np.ndarray) -> np.ndarray:
    """Divide counts by their normalization; lags without start points read 0."""
    return np.divide(
        raw, norm, out=np.zeros(raw.shape, dtype=np.float64), where=norm > 0
    )


# ============================================================================
# CORRELATION DATA
# ============================================================================


class CorrelationData:
    """
    Values of one correlation function along several directions.

    Indexing accepts the direction tag or its step tuple. Arrays handed out
    are copies.
    """

    def __init__(self, values: Dict[Direction, np.ndarray], ndim: int):
        self._values = {tag: np.asarray(v, dtype=np.float64) for tag, v in values.items()}
        self._ndim = ndim
        self._vectors = {direction_vector(tag, ndim): tag for tag in self._values}

    @property
    def directions(self) -> List[Direction]:
        return list(self._values)

    @property
    def length(self) -> int:
        return len(next(iter(self._values.values())))

    def __getitem__(self, direction: Direction) -> np.ndarray:
        if direction in self._values:
            return self._values[direction].copy()
        try:
            tag = self._vectors[direction_vector(direction, self._ndim)]
        except KeyError:
            raise InvalidDirectionError(f"Direction {direction!r} is not present") from None
        return self._values[tag].copy()

    def __iter__(self) -> Iterator[Direction]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def items(self) -> List[Tuple[Direction, np.ndarray]]:
        return [(tag, v.copy()) for tag, v in self._values.items()]

    def mean(self) -> np.ndarray:
        """Average over directions."""
        return np.mean(np.stack(list(self._values.values())), axis=0)

    def __repr__(self) -> str:
        return f"CorrelationData(directions={self.directions}, length={self.length})"


# ============================================================================
# FROM-SCRATCH FUNCTIONS
# ============================================================================


def correlation(
    kind: Any,
    array: Any,
    phase: Any,
    *,
    length: Optional[int] = None,
    directions: Optional[Sequence[Direction]] = None,
    periodic: bool = False,
) -> CorrelationData:
    """Compute correlation function ``kind`` of ``phase`` with a full pass."""
    kind = DescriptorKind.coerce(kind)
    if hasattr(array, "correlation") and not isinstance(array, np.ndarray):
        return array.correlation(kind, phase)

    array = np.asarray(array)
    lags = tracked_length(array.shape, length)
    tags, vectors = resolve_directions(directions, array.ndim)

    values = {}
    for tag, vector in zip(tags, vectors):
        raw = counts(kind, array, phase, vector, lags, periodic)
        values[tag] = normalize(raw, normalization(kind, array.shape, vector, lags, periodic))
    return CorrelationData(values, array.ndim)


def s2(array: Any, phase: Any, **kwargs) -> CorrelationData:
    """Two-point function: both ends of a segment of length r are ``phase``."""
    return correlation(DescriptorKind.S2, array, phase, **kwargs)


def l2(array: Any, phase: Any, **kwargs) -> CorrelationData:
    """Lineal-path function: a whole segment of length r lies in ``phase``."""
    return correlation(DescriptorKind.L2, array, phase, **kwargs)


def surfsurf(array: Any, phase: Any, **kwargs) -> CorrelationData:
    """Surface-surface function: phase boundaries at both ends of the segment."""
    return correlation(DescriptorKind.SS, array, phase, **kwargs)


def surfvoid(array: Any, phase: Any, **kwargs) -> CorrelationData:
    """Surface-void function: a phase boundary at the start, void at the end."""
    return correlation(DescriptorKind.SV, array, phase, **kwargs)


s2.descriptor_kind = DescriptorKind.S2
l2.descriptor_kind = DescriptorKind.L2
surfsurf.descriptor_kind = DescriptorKind.SS
surfvoid.descriptor_kind = DescriptorKind.SV


__all__ = [
    "CorrelationData",
    "correlation",
    "counts",
    "normalization",
    "normalize",
    "s2",
    "l2",
    "surfsurf",
    "surfvoid",
]
