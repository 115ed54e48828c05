"""Custom exceptions for the circulation policy layer."""

from __future__ import annotations


class CirculationError(Exception):
    """Base error for circulation failures outside the computation core."""


class PolicyLoadError(CirculationError):
    """Raised when a policy document cannot be read or fails strict validation."""


class PolicyNotFoundError(CirculationError):
    """Raised when a policy id cannot be resolved to a loaded policy."""
