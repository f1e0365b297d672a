"""
CorrTrack Correlation Tracker
=============================

An array-like container that keeps directional correlation functions of its
contents up to date while single elements are rewritten.

Construction pays for one full computation of every tracked function. After
that, each write costs O(tracked_length) per direction and descriptor: the
delta engine inspects only the neighbourhood of the written element, the
buffers absorb the deltas and a rollback token remembers how to undo them.

Example:
    system = np.random.default_rng(348).integers(0, 2, (20, 30))
    tracker = CorrelationTracker(system, [TrackedData("s2", 1), TrackedData("l2", 1)])

    tracker[12, 25] = 1 - tracker[12, 25]      # plain write
    token = tracker.update((11, 20), 1)        # write that can be undone
    tracker.rollback(token)

    trial = tracker.soft_update((3, 4), 0)     # new tracker, original untouched
    trial.read_descriptor("s2", 1, "x")

Thread safety:
    Every public operation holds the tracker's re-entrant lock, so a soft
    update always clones a consistent snapshot of its source.
"""

import itertools
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .buffers import CorrelationBuffers
from .descriptors import DescriptorRegistry, TrackedData, default_trackers
from .delta_engine import DeltaEngine
from .directional import CorrelationData
from .directions import Direction, Vector, direction_vector, format_direction, resolve_directions
from .exceptions import InvalidDirectionError, InvalidTokenError
from .grid import GridStore, as_label
from .transaction import RollbackToken

_tracker_ids = itertools.count(1)
_versions = itertools.count(1)


class CorrelationTracker:
    """
    Multi-phase array with incrementally maintained correlation functions.

    Args:
        system: Initial array (copied)
        tracking: Descriptors to maintain, TrackedData or (kind, phase) pairs.
            Defaults to :func:`~corrtrack.descriptors.default_trackers`.
        periodic: Wrap around the array edges
        directions: Direction tags or step tuples, defaults to the orthogonal axes
        length: Maximal number of lags, capped at half the smallest extent
        phases: Declared phase labels. Defaults to the labels present in
            ``system`` together with the tracked phases, or to both truth
            values for a boolean ``system``. Pass it explicitly to write
            labels that appear in neither.

    Raises:
        DuplicateDescriptorError: A (kind, phase) pair is requested twice
        InvalidDirectionError: A direction is malformed or repeated
        InvalidPhaseError: ``system`` holds a label outside ``phases``
    """

    def __init__(
        self,
        system: Any,
        tracking: Optional[Iterable[Any]] = None,
        *,
        periodic: bool = False,
        directions: Optional[Sequence[Direction]] = None,
        length: Optional[int] = None,
        phases: Optional[Iterable[Any]] = None,
    ):
        array = np.asarray(system)
        if tracking is None:
            tracking = default_trackers()
        registry = DescriptorRegistry(tracking, array.shape, length)

        if phases is None:
            phases = {as_label(v) for v in np.unique(array)} | set(registry.phases())
            if array.dtype == np.bool_:
                phases |= {False, True}
        grid = GridStore(array, phases)
        tags, vectors = resolve_directions(directions, grid.ndim)

        buffers = CorrelationBuffers(registry, vectors, grid.shape, bool(periodic))
        buffers.fill(array)

        self._setup(grid, registry, tags, vectors, bool(periodic), buffers)
        logging.debug(
            f"CorrelationTracker #{self._id}: shape={grid.shape}, "
            f"tracking={list(registry)}, directions={tags}, "
            f"tracked_length={registry.tracked_length}, periodic={self._periodic}"
        )

    def _setup(
        self,
        grid: GridStore,
        registry: DescriptorRegistry,
        tags: List[Direction],
        vectors: List[Vector],
        periodic: bool,
        buffers: CorrelationBuffers,
    ) -> None:
        self._grid = grid
        self._registry = registry
        self._tags = tags
        self._vectors = vectors
        self._periodic = periodic
        self._buffers = buffers
        self._engine = DeltaEngine(grid, registry, vectors, periodic)

        self._lock = threading.RLock()
        self._id = next(_tracker_ids)
        self._version = next(_versions)
        self._counters = {"updates": 0, "rollbacks": 0, "soft_updates": 0}

    # ========================================================================
    # ARRAY INTERFACE
    # ========================================================================

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._grid.shape

    @property
    def ndim(self) -> int:
        return self._grid.ndim

    @property
    def size(self) -> int:
        return self._grid.size

    @property
    def dtype(self) -> np.dtype:
        return self._grid.dtype

    @property
    def phases(self) -> List[Any]:
        return sorted(self._grid.phases, key=repr)

    def __len__(self) -> int:
        return self.shape[0]

    def __getitem__(self, idx: Any) -> Any:
        return self.read(idx)

    def __setitem__(self, idx: Any, value: Any) -> None:
        self.update(idx, value)

    def to_numpy(self) -> np.ndarray:
        """Copy of the current grid."""
        with self._lock:
            return self._grid.to_numpy()

    def __array__(self, dtype: Any = None, copy: Any = None) -> np.ndarray:
        """Fresh copy of the grid, whatever ``copy`` requests."""
        array = self.to_numpy()
        return array if dtype is None else array.astype(dtype)

    def __repr__(self) -> str:
        return (
            f"CorrelationTracker(shape={self.shape}, tracking={list(self._registry)}, "
            f"directions={[format_direction(t) for t in self._tags]}, "
            f"tracked_length={self.tracked_length}, periodic={self._periodic})"
        )

    # ========================================================================
    # ELEMENT ACCESS AND MUTATION
    # ========================================================================

    def read(self, idx: Any) -> Any:
        with self._lock:
            return self._grid.get(idx)

    def write(self, idx: Any, value: Any) -> Any:
        """Set an element and return its previous label."""
        return self.update(idx, value).old

    def update(self, idx: Any, value: Any) -> RollbackToken:
        """
        Set an element and return the token that undoes it.

        Raises:
            OutOfBoundsError: ``idx`` is outside the grid
            InvalidPhaseError: ``value`` is not a declared phase

        Nothing is modified when validation fails.
        """
        with self._lock:
            coord = self._grid.check_index(idx)
            label = self._grid.check_phase(value)
            old = self._grid.peek(coord)

            delta = self._engine.compute(coord, old, label)
            if old != label:
                self._grid.set(coord, label)
            self._buffers.apply(delta)

            before, self._version = self._version, next(_versions)
            self._counters["updates"] += 1
            return RollbackToken(
                tracker_id=self._id,
                coord=coord,
                old=old,
                new=label,
                delta=delta,
                version_before=before,
                version_after=self._version,
            )

    def rollback(self, token: RollbackToken) -> None:
        """
        Undo the update that produced ``token``.

        Raises:
            InvalidTokenError: the token belongs to another tracker, was
                already used, or later updates have not been rolled back yet
        """
        with self._lock:
            if not isinstance(token, RollbackToken):
                raise InvalidTokenError(f"Expected a RollbackToken, got {type(token).__name__}")
            if token.tracker_id != self._id:
                raise InvalidTokenError("Token was issued by a different tracker")
            if token.consumed:
                raise InvalidTokenError("Token has already been rolled back")
            if token.version_after != self._version:
                raise InvalidTokenError(
                    "Token is stale: the tracker changed after it was issued"
                )

            self._buffers.revert(token.delta)
            if not token.is_identity:
                self._grid.set(token.coord, token.old)
            self._version = token.version_before
            token.consumed = True
            self._counters["rollbacks"] += 1
            logging.debug(f"CorrelationTracker #{self._id}: rolled back {token!r}")

    def soft_update(self, idx: Any, value: Any) -> "CorrelationTracker":
        """
        Return a new tracker equal to this one after ``self[idx] = value``.

        This tracker, its grid and its buffers stay unmodified. The new
        tracker shares the grid copy-on-write and owns a copy of the buffers;
        it accepts further writes and soft updates of its own.
        """
        with self._lock:
            coord = self._grid.check_index(idx)
            label = self._grid.check_phase(value)
            old = self._grid.peek(coord)
            delta = self._engine.compute(coord, old, label)

            buffers = self._buffers.copy()
            buffers.apply(delta)
            other = CorrelationTracker.__new__(CorrelationTracker)
            other._setup(
                self._grid.derive(coord, label),
                self._registry,
                list(self._tags),
                list(self._vectors),
                self._periodic,
                buffers,
            )
            self._counters["soft_updates"] += 1
            logging.debug(
                f"CorrelationTracker #{self._id}: soft update {coord}: {old!r} → {label!r} "
                f"as tracker #{other._id}"
            )
            return other

    # ========================================================================
    # CORRELATION ACCESS
    # ========================================================================

    def _direction_index(self, direction: Direction) -> int:
        vector = direction_vector(direction, self.ndim)
        try:
            return self._vectors.index(vector)
        except ValueError:
            raise InvalidDirectionError(f"Direction {direction!r} is not tracked") from None

    def read_descriptor(self, kind: Any, phase: Any, direction: Direction) -> np.ndarray:
        """Normalized values of a tracked function for lags 0..tracked_length-1."""
        with self._lock:
            k = self._registry.index(kind, phase)
            return self._buffers.read(self._direction_index(direction), k)

    def read_counts(self, kind: Any, phase: Any, direction: Direction) -> np.ndarray:
        """Raw integer counts behind :meth:`read_descriptor`."""
        with self._lock:
            k = self._registry.index(kind, phase)
            return self._buffers.raw(self._direction_index(direction), k)

    def correlation(self, kind: Any, phase: Any) -> CorrelationData:
        """A tracked function along every tracked direction."""
        with self._lock:
            k = self._registry.index(kind, phase)
            values = dict(zip(self._tags, self._buffers.read_all(k)))
            return CorrelationData(values, self.ndim)

    def tracked_data(self) -> List[TrackedData]:
        return list(self._registry)

    @property
    def tracked_length(self) -> int:
        return self._registry.tracked_length

    @property
    def tracked_directions(self) -> List[Direction]:
        return list(self._tags)

    @property
    def periodic(self) -> bool:
        return self._periodic

    # ========================================================================
    # MAINTENANCE
    # ========================================================================

    def recalculate(self) -> None:
        """Rebuild every buffer from scratch. Outstanding tokens stay valid."""
        with self._lock:
            self._buffers.fill(self._grid.to_numpy())
            logging.debug(f"CorrelationTracker #{self._id}: buffers recalculated")

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": self._version,
                "updates": self._counters["updates"],
                "rollbacks": self._counters["rollbacks"],
                "soft_updates": self._counters["soft_updates"],
                "last_reads": self._engine.last_reads,
                "total_reads": self._engine.total_reads,
                "grid_shared": self._grid.is_shared,
                "descriptors": len(self._registry),
                "directions": len(self._vectors),
                "tracked_length": self.tracked_length,
            }
