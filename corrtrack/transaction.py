"""
CorrTrack Rollback Tokens
=========================

A :class:`RollbackToken` records exactly what one update changed: the
coordinate, the labels before and after and the count deltas applied to the
buffers. Rolling it back subtracts the deltas and restores the old label.

Tokens are single use and follow the tracker's version history: each update
moves the tracker to a fresh version, and a token is accepted only while the
tracker is still at the version its update produced. Rolling back restores
the previous version, so tokens can be unwound in LIFO order.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .grid import Coord


@dataclass(eq=False)
class RollbackToken:
    """Inverse of one update. Opaque to callers apart from the read-only fields."""

    tracker_id: int
    coord: Coord
    old: Any
    new: Any
    delta: np.ndarray = field(repr=False)
    version_before: int
    version_after: int
    consumed: bool = False

    def __post_init__(self):
        self.delta.setflags(write=False)

    @property
    def is_identity(self) -> bool:
        """True for writes that left the label (and therefore every count) unchanged."""
        return self.old == self.new and not self.delta.any()

    def __repr__(self) -> str:
        state = "consumed" if self.consumed else "pending"
        return f"RollbackToken({self.coord}: {self.old!r} → {self.new!r}, {state})"
