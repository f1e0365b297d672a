"""
CorrTrack Exceptions
====================

Every error raised by the tracker derives from :class:`CorrelationTrackerError`.
The concrete classes also inherit from the matching built-in exception so that
callers treating a tracker like an ordinary array (``except IndexError``) keep
working.
"""


class CorrelationTrackerError(Exception):
    """Base class for all tracker errors."""

    pass


class OutOfBoundsError(CorrelationTrackerError, IndexError):
    """Raised when a coordinate lies outside the grid extents."""

    pass


class InvalidPhaseError(CorrelationTrackerError, ValueError):
    """Raised when a value is not one of the declared phase labels."""

    pass


class DuplicateDescriptorError(CorrelationTrackerError, ValueError):
    """Raised when the same (kind, phase) pair is requested twice."""

    pass


class UnsupportedDescriptorError(CorrelationTrackerError, LookupError):
    """Raised when reading a descriptor the tracker does not track."""

    pass


class InvalidTokenError(CorrelationTrackerError, ValueError):
    """Raised when rolling back a foreign, consumed or stale token."""

    pass


class InvalidDirectionError(CorrelationTrackerError, ValueError):
    """Raised for malformed, duplicate or untracked directions."""

    pass


__all__ = [
    "CorrelationTrackerError",
    "OutOfBoundsError",
    "InvalidPhaseError",
    "DuplicateDescriptorError",
    "UnsupportedDescriptorError",
    "InvalidTokenError",
    "InvalidDirectionError",
]
