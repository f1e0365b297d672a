"""
CorrTrack Correlation Buffers
=============================

Cached correlation counts laid out as direction x descriptor x lag.

Counts are exact int64 values; normalized reads divide by the number of
admissible start points, which depends only on the grid shape and is
computed once per buffer set.
"""

from typing import List, Sequence, Tuple

import numpy as np

from . import directional
from .descriptors import DescriptorRegistry
from .directions import Vector


class CorrelationBuffers:
    """
    Per-(direction, descriptor) lag sequences of correlation counts.

    Args:
        registry: Tracked descriptors, defines the descriptor axis and lag count
        vectors: Direction step vectors, defines the direction axis
        shape: Grid shape
        periodic: Boundary mode
    """

    def __init__(
        self,
        registry: DescriptorRegistry,
        vectors: Sequence[Vector],
        shape: Tuple[int, ...],
        periodic: bool,
    ):
        self._registry = registry
        self._vectors = list(vectors)
        self._shape = tuple(shape)
        self._periodic = periodic

        layout = (len(self._vectors), len(registry), registry.tracked_length)
        self.counts = np.zeros(layout, dtype=np.int64)
        self.norms = np.zeros(layout, dtype=np.int64)
        for d, vector in enumerate(self._vectors):
            for k, data in enumerate(registry):
                self.norms[d, k] = directional.normalization(
                    data.kind, self._shape, vector, registry.tracked_length, periodic
                )

    @property
    def layout(self) -> Tuple[int, int, int]:
        return self.counts.shape

    def fill(self, array: np.ndarray) -> None:
        """Initialize every buffer with one full, non-incremental pass."""
        length = self._registry.tracked_length
        for d, vector in enumerate(self._vectors):
            for k, data in enumerate(self._registry):
                self.counts[d, k] = directional.counts(
                    data.kind, array, data.phase, vector, length, self._periodic
                )

    # ========================================================================
    # READ ACCESS
    # ========================================================================

    def raw(self, d: int, k: int) -> np.ndarray:
        return self.counts[d, k].copy()

    def read(self, d: int, k: int) -> np.ndarray:
        return directional.normalize(self.counts[d, k], self.norms[d, k])

    def read_all(self, k: int) -> List[np.ndarray]:
        return [self.read(d, k) for d in range(len(self._vectors))]

    # ========================================================================
    # MUTATION (used by update / rollback only)
    # ========================================================================

    def apply(self, delta: np.ndarray) -> None:
        self.counts += delta

    def revert(self, delta: np.ndarray) -> None:
        self.counts -= delta

    def copy(self) -> "CorrelationBuffers":
        other = CorrelationBuffers.__new__(CorrelationBuffers)
        other._registry = self._registry
        other._vectors = self._vectors
        other._shape = self._shape
        other._periodic = self._periodic
        other.counts = self.counts.copy()
        other.norms = self.norms
        return other

    def __repr__(self) -> str:
        d, k, r = self.layout
        return f"CorrelationBuffers(directions={d}, descriptors={k}, lags={r})"
