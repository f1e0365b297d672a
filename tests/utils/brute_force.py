"""
Naive reference counters
========================

Element-by-element loops that follow the definitions literally. Slow, but
independent of the numpy shifting used by ``corrtrack.directional``.
"""

from typing import Any, Optional, Sequence, Tuple

import numpy as np


def _at(x: Tuple[int, ...], vector: Sequence[int], t: int, shape, periodic: bool) -> Optional[Tuple[int, ...]]:
    out = []
    for xi, vi, n in zip(x, vector, shape):
        i = xi + vi * t
        if periodic:
            i %= n
        elif not 0 <= i < n:
            return None
        out.append(i)
    return tuple(out)


def brute_counts(
    kind: str, array: np.ndarray, phase: Any, vector: Sequence[int], length: int, periodic: bool
) -> np.ndarray:
    shape = array.shape

    def inside(y):
        return y is not None and array[y] == phase

    def edge(y):
        if y is None:
            return False
        z = _at(y, vector, 1, shape, periodic)
        return z is not None and inside(y) != inside(z)

    def void(y):
        return y is not None and array[y] != phase

    out = np.zeros(length, dtype=np.int64)
    for x in np.ndindex(*shape):
        for r in range(length):
            end = _at(x, vector, r, shape, periodic)
            if kind == "s2":
                hit = inside(x) and inside(end)
            elif kind == "l2":
                hit = all(inside(_at(x, vector, k, shape, periodic)) for k in range(r + 1))
            elif kind == "surfsurf":
                hit = edge(x) and edge(end)
            elif kind == "surfvoid":
                hit = edge(x) and void(end)
            else:
                raise ValueError(kind)
            out[r] += int(hit)
    return out


def brute_s2_pairs(array: np.ndarray, phase: Any, axis: int, lag: int) -> int:
    """Count pairs along ``axis`` at distance ``lag`` that are both ``phase`` (non-periodic)."""
    n = array.shape[axis]
    total = 0
    for i in range(n - lag):
        a = np.take(array, i, axis=axis)
        b = np.take(array, i + lag, axis=axis)
        total += int(np.count_nonzero((a == phase) & (b == phase)))
    return total
