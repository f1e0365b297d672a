"""
Shared pytest fixtures for CorrTrack tests.
"""

import numpy as np
import pytest

from corrtrack import DescriptorKind, TrackedData


@pytest.fixture
def rng():
    """Deterministic random generator."""
    return np.random.default_rng(348)


@pytest.fixture
def binary_grid(rng):
    return rng.integers(0, 2, (12, 10))


@pytest.fixture
def three_phase_grid(rng):
    return rng.integers(0, 3, (9, 11))


@pytest.fixture
def all_kinds():
    """Every descriptor kind for phases 0, 1 and 2."""
    return [TrackedData(kind, phase) for kind in DescriptorKind for phase in (0, 1, 2)]


@pytest.fixture
def scenario_grid():
    """Fixed 4x4 binary layout used by the worked example tests."""
    return np.array(
        [
            [1, 0, 1, 1],
            [0, 1, 1, 0],
            [1, 1, 0, 0],
            [0, 1, 0, 1],
        ]
    )
