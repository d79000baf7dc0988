"""Exception hierarchy for :mod:`green_carbon`."""

from __future__ import annotations


class GreenCarbonError(Exception):
    """Base class for errors raised by green_carbon collaborators."""


class SamplerError(GreenCarbonError):
    """Raised when a power sampler cannot read a hardware domain."""


class LocationResolutionError(GreenCarbonError):
    """Raised when a location resolver cannot determine the host location."""


class OutputError(GreenCarbonError):
    """Raised when an output sink fails to emit a result."""
