"""
CorrTrack Grid Store
====================

Owns the raw phase labels of an N-dimensional multi-phase array and exposes
bounds-checked reads and writes of single elements.

Grids created by a soft update share the source array copy-on-write: the
derived store keeps its own modifications in a small overlay on top of the
shared base, and whichever side performs the first in-place write takes a
private copy of the base first. Sharing is reference counted through
:class:`_SharedArray`; the count drops when a store is garbage collected.
"""

import threading
import weakref
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

import numpy as np

from .exceptions import InvalidPhaseError, OutOfBoundsError

Coord = Tuple[int, ...]

# Overlay entries a soft-updated store may accumulate before it copies the base
MAX_OVERLAY = 64

# Stores sharing an array are guarded by different tracker locks, and
# finalizers may release a reference from inside a collection
_refs_lock = threading.RLock()


def as_label(value: Any) -> Any:
    """Convert numpy scalars to plain Python values so labels hash consistently."""
    if isinstance(value, np.generic):
        return value.item()
    return value


class _SharedArray:
    """Reference-counted holder of a grid array shared between stores."""

    __slots__ = ("data", "refs")

    def __init__(self, data: np.ndarray):
        self.data = data
        self.refs = 0

    def acquire(self) -> "_SharedArray":
        with _refs_lock:
            self.refs += 1
        return self

    def release(self) -> None:
        with _refs_lock:
            self.refs -= 1


def _release(shared: _SharedArray) -> None:
    shared.release()


class GridStore:
    """
    Bounds- and phase-checked element storage.

    Args:
        array: Initial contents. Copied, the store owns its data exclusively.
        phases: Declared phase labels. Defaults to the labels present in ``array``.
    """

    def __init__(self, array: Any, phases: Optional[Iterable[Any]] = None):
        data = np.array(array, copy=True)
        if data.ndim == 0:
            raise ValueError("Grid must have at least one dimension")

        present = {as_label(v) for v in np.unique(data)}
        declared = frozenset(as_label(p) for p in phases) if phases is not None else frozenset(present)
        stray = present - declared
        if stray:
            raise InvalidPhaseError(
                f"Grid contains labels {sorted(stray, key=repr)} outside the declared phases"
            )

        self._phases: FrozenSet[Any] = declared
        self._overlay: Dict[Coord, Any] = {}
        self._attach(_SharedArray(data))

    def _attach(self, shared: _SharedArray) -> None:
        self._base = shared.acquire()
        self._finalizer = weakref.finalize(self, _release, shared)

    def _detach(self) -> None:
        self._finalizer()

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._base.data.shape

    @property
    def ndim(self) -> int:
        return self._base.data.ndim

    @property
    def size(self) -> int:
        return self._base.data.size

    @property
    def dtype(self) -> np.dtype:
        return self._base.data.dtype

    @property
    def phases(self) -> FrozenSet[Any]:
        return self._phases

    @property
    def is_shared(self) -> bool:
        """True while the underlying array is shared with another store."""
        return self._base.refs > 1

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def check_index(self, idx: Any) -> Coord:
        """Normalize ``idx`` to a coordinate tuple, raising OutOfBoundsError."""
        if not isinstance(idx, tuple):
            idx = (idx,)
        if len(idx) != self.ndim:
            raise OutOfBoundsError(
                f"Index {idx} has {len(idx)} components, grid has {self.ndim} dimensions"
            )

        coord = []
        for axis, (i, n) in enumerate(zip(idx, self.shape)):
            if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
                raise OutOfBoundsError(f"Index component {i!r} on axis {axis} is not an integer")
            i = int(i)
            if not 0 <= i < n:
                raise OutOfBoundsError(f"Index {idx} is outside grid of shape {self.shape}")
            coord.append(i)
        return tuple(coord)

    def check_phase(self, value: Any) -> Any:
        label = as_label(value)
        try:
            known = label in self._phases
        except TypeError:
            known = False
        if not known:
            raise InvalidPhaseError(
                f"{value!r} is not a declared phase {sorted(self._phases, key=repr)}"
            )
        return label

    # ========================================================================
    # ELEMENT ACCESS
    # ========================================================================

    def peek(self, coord: Coord) -> Any:
        """Read a validated coordinate without bounds checking."""
        if self._overlay:
            try:
                return self._overlay[coord]
            except KeyError:
                pass
        return as_label(self._base.data[coord])

    def get(self, idx: Any) -> Any:
        return self.peek(self.check_index(idx))

    def set(self, idx: Any, value: Any) -> Any:
        """Write ``value`` at ``idx`` and return the previous label."""
        coord = self.check_index(idx)
        label = self.check_phase(value)
        previous = self.peek(coord)
        self._poke(coord, label)
        return previous

    def _poke(self, coord: Coord, label: Any) -> None:
        if self.is_shared:
            self._materialize()
        elif self._overlay:
            # Sole owner again: fold the overlay into the base in place
            for other, value in self._overlay.items():
                self._base.data[other] = value
            self._overlay = {}
        self._base.data[coord] = label

    def _materialize(self) -> None:
        data = self._base.data.copy()
        for coord, label in self._overlay.items():
            data[coord] = label
        self._overlay = {}
        self._detach()
        self._attach(_SharedArray(data))

    # ========================================================================
    # COPY-ON-WRITE SHARING
    # ========================================================================

    def derive(self, coord: Coord, label: Any) -> "GridStore":
        """
        Return a store equal to this one with ``coord`` set to ``label``.

        The new store shares this store's array; the change lives in its
        overlay until the overlay grows past MAX_OVERLAY entries.
        """
        other = GridStore.__new__(GridStore)
        other._phases = self._phases
        other._overlay = dict(self._overlay)
        other._overlay[coord] = label
        other._attach(self._base)
        if len(other._overlay) > MAX_OVERLAY:
            other._materialize()
        return other

    def to_numpy(self) -> np.ndarray:
        data = self._base.data.copy()
        for coord, label in self._overlay.items():
            data[coord] = label
        return data

    def __repr__(self) -> str:
        return f"GridStore(shape={self.shape}, phases={sorted(self._phases, key=repr)})"
