"""
CorrTrack Descriptors
=====================

The closed set of correlation function kinds a tracker can maintain, the
(kind, phase) pairs requested by the caller and the registry that fixes
them for the lifetime of a tracker.

Surface kinds accept a secondary phase for compatibility, but it is inert:
only the primary phase and the "everything else is void" convention are used.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .exceptions import DuplicateDescriptorError, UnsupportedDescriptorError
from .grid import as_label


class DescriptorKind(Enum):
    """Correlation function families with an incremental update rule."""

    S2 = "s2"
    L2 = "l2"
    SS = "surfsurf"
    SV = "surfvoid"

    @property
    def is_surface(self) -> bool:
        return self in (DescriptorKind.SS, DescriptorKind.SV)

    @classmethod
    def coerce(cls, value: Any) -> "DescriptorKind":
        """
        Accept a kind, its name or value, an alias, or a from-scratch
        function from :mod:`corrtrack.directional` (``TrackedData(s2, 1)``).
        """
        if isinstance(value, cls):
            return value
        kind = getattr(value, "descriptor_kind", None)
        if isinstance(kind, cls):
            return kind
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _ALIASES:
                return _ALIASES[key]
        raise UnsupportedDescriptorError(f"Unknown correlation function kind: {value!r}")

    def __str__(self) -> str:
        return self.value


_ALIASES: Dict[str, DescriptorKind] = {
    "s2": DescriptorKind.S2,
    "two-point": DescriptorKind.S2,
    "l2": DescriptorKind.L2,
    "lineal-path": DescriptorKind.L2,
    "ss": DescriptorKind.SS,
    "surfsurf": DescriptorKind.SS,
    "surface-surface": DescriptorKind.SS,
    "sv": DescriptorKind.SV,
    "surfvoid": DescriptorKind.SV,
    "surface-void": DescriptorKind.SV,
}


@dataclass(frozen=True)
class TrackedData:
    """
    A correlation function and the phase it is computed for.

    Examples:
        TrackedData("l2", 1)
        TrackedData(DescriptorKind.SS, 1, secondary_phase=0)
    """

    kind: DescriptorKind
    phase: Any
    secondary_phase: Optional[Any] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", DescriptorKind.coerce(self.kind))
        object.__setattr__(self, "phase", as_label(self.phase))
        if self.secondary_phase is not None:
            object.__setattr__(self, "secondary_phase", as_label(self.secondary_phase))

    @property
    def key(self) -> Tuple[DescriptorKind, Any]:
        return (self.kind, self.phase)

    def __repr__(self) -> str:
        if self.secondary_phase is None:
            return f"TrackedData({self.kind.value}, {self.phase!r})"
        return f"TrackedData({self.kind.value}, {self.phase!r}, {self.secondary_phase!r})"


def default_trackers() -> List[TrackedData]:
    """S2 of phase 1, L2 of phase 1 and L2 of phase 0."""
    return [
        TrackedData(DescriptorKind.S2, 1),
        TrackedData(DescriptorKind.L2, 1),
        TrackedData(DescriptorKind.L2, 0),
    ]


def tracked_length(shape: Sequence[int], length: Optional[int] = None) -> int:
    """
    Number of lags a tracker keeps for a grid of ``shape``.

    Capped at half the smallest extent so that lag windows never wrap onto
    themselves; never less than one (lag 0).
    """
    limit = min(shape) // 2
    if length is not None:
        if length < 1:
            raise ValueError(f"Tracked length must be positive, got {length}")
        limit = min(limit, int(length))
    return max(1, limit)


class DescriptorRegistry:
    """
    Ordered, immutable set of tracked descriptors.

    Args:
        tracking: Requested descriptors (TrackedData or (kind, phase) pairs)
        shape: Grid shape, used to derive the tracked length
        length: Requested maximal length, capped by the grid
    """

    def __init__(
        self,
        tracking: Iterable[Any],
        shape: Sequence[int],
        length: Optional[int] = None,
    ):
        entries: List[TrackedData] = []
        index: Dict[Tuple[DescriptorKind, Any], int] = {}
        for item in tracking:
            data = item if isinstance(item, TrackedData) else TrackedData(*item)
            if data.key in index:
                raise DuplicateDescriptorError(
                    f"{data.kind.value} for phase {data.phase!r} is requested more than once"
                )
            index[data.key] = len(entries)
            entries.append(data)

        self._entries: Tuple[TrackedData, ...] = tuple(entries)
        self._index = index
        self.tracked_length = tracked_length(shape, length)

    def __iter__(self) -> Iterator[TrackedData]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, position: int) -> TrackedData:
        return self._entries[position]

    def __contains__(self, key: Any) -> bool:
        try:
            self.index(*key)
        except (UnsupportedDescriptorError, TypeError):
            return False
        return True

    def index(self, kind: Any, phase: Any) -> int:
        """Position of (kind, phase) in the registry."""
        key = (DescriptorKind.coerce(kind), as_label(phase))
        try:
            return self._index[key]
        except KeyError:
            raise UnsupportedDescriptorError(
                f"{key[0].value} for phase {key[1]!r} is not tracked"
            ) from None

    def phases(self) -> List[Any]:
        seen = []
        for data in self._entries:
            if data.phase not in seen:
                seen.append(data.phase)
        return seen

    def __repr__(self) -> str:
        return f"DescriptorRegistry({list(self._entries)}, tracked_length={self.tracked_length})"
