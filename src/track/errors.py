"""Exceptions raised by the tracker."""

from __future__ import annotations


class TrackError(Exception):
    """Base class for every error reported to the user."""


class ValidationError(TrackError):
    """Malformed user input (time expressions, names, positions)."""


class StateError(TrackError):
    """The requested operation does not fit the stored state."""


class TemporalInvariantError(TrackError):
    """A session or range violates ordering, future or overlap rules."""


class StorageError(TrackError):
    """Reading or writing persistent state (or a prompt) failed."""
