"""
Error taxonomy for detection and component building.

- ConfigurationError: invalid options or unusable input; fatal to one call
- ComponentCreationError: one boundary could not become a component; recoverable
- MissingMeasurementError: a measurement was requested before being added
"""

from __future__ import annotations


class NmorphError(Exception):
    """Base class for all package errors."""


class ConfigurationError(NmorphError, ValueError):
    """Detection options or the input buffer cannot be used."""


class ComponentCreationError(NmorphError):
    """A detected boundary could not be turned into a component."""


class MissingMeasurementError(ComponentCreationError, KeyError):
    """A measurement was read from a StatsMap that never received it."""

    def __str__(self) -> str:
        return Exception.__str__(self)
