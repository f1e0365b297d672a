"""
CorrTrack - Incrementally Tracked Correlation Functions

Keeps directional correlation functions (two-point, lineal-path,
surface-surface and surface-void) of a multi-phase array up to date while
single elements change, at a cost independent of the array size.
"""

from . import directional
from .buffers import CorrelationBuffers
from .delta_engine import DeltaEngine
from .descriptors import (
    DescriptorKind,
    DescriptorRegistry,
    TrackedData,
    default_trackers,
    tracked_length,
)
from .directional import CorrelationData
from .directions import default_directions, direction_vector
from .exceptions import (
    CorrelationTrackerError,
    DuplicateDescriptorError,
    InvalidDirectionError,
    InvalidPhaseError,
    InvalidTokenError,
    OutOfBoundsError,
    UnsupportedDescriptorError,
)
from .grid import GridStore
from .tracker import CorrelationTracker
from .transaction import RollbackToken

__all__ = [
    # Tracker
    "CorrelationTracker",
    "RollbackToken",
    # Descriptors
    "DescriptorKind",
    "DescriptorRegistry",
    "TrackedData",
    "default_trackers",
    "tracked_length",
    # Directions
    "default_directions",
    "direction_vector",
    # Building blocks
    "CorrelationBuffers",
    "CorrelationData",
    "DeltaEngine",
    "GridStore",
    # From-scratch functions
    "directional",
    # Exceptions
    "CorrelationTrackerError",
    "OutOfBoundsError",
    "InvalidPhaseError",
    "DuplicateDescriptorError",
    "UnsupportedDescriptorError",
    "InvalidTokenError",
    "InvalidDirectionError",
]

__version__ = "0.1.0"
