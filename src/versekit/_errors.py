"""Exception types for versekit."""

from __future__ import annotations


class VersekitError(Exception):
    """Base class for all versekit errors."""


class ValidationError(VersekitError, ValueError):
    """Malformed input, rejected before the store is touched."""


class StorageUnavailable(VersekitError):
    """The backing store could not be reached or returned a fault.

    The original exception is chained as ``__cause__``.
    """
