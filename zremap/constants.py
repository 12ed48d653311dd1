"""Numerical constants shared by the remapping kernels.

Lengths are expressed in the model's internal depth unit; the only conversion
applied to file data is the multiplicative ``unit_scale`` of the driver.
"""
from __future__ import annotations

from dataclasses import dataclass

# Negligible cell width used to regularise denominators [Z]
H_NEGLECT_DEFAULT: float = 1.0e-30

# Relative tolerance when comparing data against a missing-value sentinel
MISSING_VALUE_RTOL: float = 1.0e-6

# Value written into land (masked) columns unless the caller overrides it
LAND_VALUE_DEFAULT: float = 0.0

# Rational factors of the centred moment expressions
C1_12: float = 1.0 / 12.0
C5_6: float = 5.0 / 6.0

# Attributes searched, in order, for a missing-value sentinel
MISSING_VALUE_ATTRS: tuple[str, ...] = ("missing_value", "_FillValue")

# Attribute on the vertical coordinate naming the interface variable
EDGES_ATTR: str = "edges"


@dataclass(frozen=True)
class StencilSizes:
    """Number of cells used by the boundary polynomial fits."""

    H3: int = 4
    H5: int = 6
