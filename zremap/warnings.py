"""Structured warning classes for the :mod:`zremap` package."""
from __future__ import annotations


class ZRemapWarning(UserWarning):
    """Base warning class for zremap."""


class SourceDataWarning(ZRemapWarning):
    """Data-quality problems found in the source file."""


class NumericalWarning(ZRemapWarning):
    """Numerical stability or kernel fallback warnings."""


__all__ = [
    "ZRemapWarning",
    "SourceDataWarning",
    "NumericalWarning",
]
