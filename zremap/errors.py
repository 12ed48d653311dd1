"""Custom exceptions for the :mod:`zremap` package."""
from __future__ import annotations


class ZRemapError(Exception):
    """Base exception for z-space remapping errors."""


class ConfigurationError(ZRemapError, ValueError):
    """Invalid configuration or inconsistent input shapes."""


class SourceReadError(ZRemapError, RuntimeError):
    """The source file could not be used; callers may recover from this."""


class MissingDataError(ZRemapError, ValueError):
    """A missing-value sentinel was found where data cannot be interpolated."""


class NumericalError(ZRemapError, RuntimeError):
    """Singular systems or other numerical breakdowns."""


__all__ = [
    "ZRemapError",
    "ConfigurationError",
    "SourceReadError",
    "MissingDataError",
    "NumericalError",
]
