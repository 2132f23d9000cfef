"""Exception hierarchy for the lunar computation core."""

from __future__ import annotations


class LunarError(Exception):
    """Base class for errors raised by :mod:`lunarcore`."""


class InvalidArgumentError(LunarError, ValueError):
    """Raised when an input is outside the domain a computation accepts."""


class EphemerisError(LunarError, RuntimeError):
    """Raised when ephemeris loading or computation fails."""


class EphemerisAcquisitionError(EphemerisError):
    """Raised when the default ephemeris cannot be acquired."""
