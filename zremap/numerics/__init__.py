"""Numerical building blocks of the column reconstruction."""
from .edge_slopes import EdgeSlopeEstimator, EdgeSlopeFormula, estimate_edge_slopes
from .overlap import Overlap, find_limited_slope, find_overlap

__all__ = [
    "EdgeSlopeEstimator",
    "EdgeSlopeFormula",
    "Overlap",
    "estimate_edge_slopes",
    "find_limited_slope",
    "find_overlap",
]
