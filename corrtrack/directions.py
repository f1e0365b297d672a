"""
CorrTrack Directions
====================

Lattice directions along which correlation functions are evaluated.

A direction is either a tag (``"x"``, ``"y"``, ``"z"`` for the axes 0, 1, 2 and
``"xy"``, ``"yx"``, ``"xz"``, ``"zx"``, ``"yz"``, ``"zy"`` for the plane
diagonals) or an explicit step tuple with entries in {-1, 0, 1}. The first
letter of a diagonal tag steps forward, the second forward for ``"xy"`` and
backward for ``"yx"``.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

from .exceptions import InvalidDirectionError

Direction = Union[str, Tuple[int, ...]]
Vector = Tuple[int, ...]

# tag -> {axis: step}
_TAGS: Dict[str, Dict[int, int]] = {
    "x": {0: 1},
    "y": {1: 1},
    "z": {2: 1},
    "xy": {0: 1, 1: 1},
    "yx": {0: 1, 1: -1},
    "xz": {0: 1, 2: 1},
    "zx": {0: 1, 2: -1},
    "yz": {1: 1, 2: 1},
    "zy": {1: 1, 2: -1},
}


def direction_vector(direction: Direction, ndim: int) -> Vector:
    """Step vector of ``direction`` for a grid with ``ndim`` dimensions."""
    if isinstance(direction, str):
        steps = _TAGS.get(direction)
        if steps is None:
            raise InvalidDirectionError(f"Unknown direction tag {direction!r}")
        if max(steps) >= ndim:
            raise InvalidDirectionError(
                f"Direction {direction!r} needs {max(steps) + 1} dimensions, grid has {ndim}"
            )
        return tuple(steps.get(axis, 0) for axis in range(ndim))

    try:
        vector = tuple(int(step) for step in direction)
    except (TypeError, ValueError):
        raise InvalidDirectionError(f"Malformed direction {direction!r}") from None
    if len(vector) != ndim:
        raise InvalidDirectionError(
            f"Direction {direction!r} has {len(vector)} components, grid has {ndim}"
        )
    if any(step not in (-1, 0, 1) for step in vector) or not any(vector):
        raise InvalidDirectionError(
            f"Direction {direction!r} must have steps in {{-1, 0, 1}} and not be zero"
        )
    return vector


def default_directions(ndim: int) -> List[Direction]:
    """All orthogonal axes of an ``ndim``-dimensional grid."""
    if ndim <= 3:
        return list("xyz"[:ndim])
    return [tuple(int(axis == i) for axis in range(ndim)) for i in range(ndim)]


def resolve_directions(
    directions: Optional[Sequence[Direction]], ndim: int
) -> Tuple[List[Direction], List[Vector]]:
    """
    Validate a direction list and return (tags, vectors) in the given order.

    Explicit tuples are kept as tuples; the same step given twice (even as a
    tag and a tuple) is rejected.
    """
    if directions is None:
        directions = default_directions(ndim)
    if isinstance(directions, str):
        directions = [directions]

    tags: List[Direction] = []
    vectors: List[Vector] = []
    for direction in directions:
        vector = direction_vector(direction, ndim)
        if vector in vectors:
            raise InvalidDirectionError(f"Direction {direction!r} is given more than once")
        tags.append(direction if isinstance(direction, str) else vector)
        vectors.append(vector)

    if not vectors:
        raise InvalidDirectionError("At least one direction is required")
    return tags, vectors


def step(
    coord: Sequence[int],
    vector: Vector,
    offset: int,
    shape: Sequence[int],
    periodic: bool,
) -> Optional[Tuple[int, ...]]:
    """
    Coordinate ``offset`` steps away from ``coord`` along ``vector``.

    Periodic grids wrap; otherwise None is returned outside the grid.
    """
    result = []
    for c, v, n in zip(coord, vector, shape):
        i = c + v * offset
        if periodic:
            i %= n
        elif not 0 <= i < n:
            return None
        result.append(i)
    return tuple(result)


def format_direction(direction: Direction) -> str:
    if isinstance(direction, str):
        return direction
    return "(" + ",".join(str(s) for s in direction) + ")"
