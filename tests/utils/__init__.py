"""Shared helpers for the CorrTrack test suite."""
