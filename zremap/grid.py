"""Horizontal grid description and z-star target interfaces.

The remapper only needs a handful of per-column scalars from the ocean grid:
the bathymetric depth, the land/ocean mask and, for diagnostics, the
geographic position.  Horizontal decomposition is reduced to the index bounds
of the computational domain.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

import numpy as np

from .errors import ConfigurationError


def zstar_interfaces(
    h: np.ndarray,
    depth: float,
    mask: float = 1.0,
    out: Optional[np.ndarray] = None,
) -> Optional[np.ndarray]:
    """Return the z-star interface heights of one column.

    The layer thicknesses ``h`` are dilated so that the column spans exactly
    ``depth``: ``e[N] = -depth`` and ``e[k] = e[k+1] + dilate * h[k]`` with
    ``dilate = depth / sum(h)``.

    Parameters
    ----------
    h:
        Layer thicknesses, top to bottom.
    depth:
        Positive bathymetric depth of the column.
    mask:
        Ocean mask of the column (0 on land).
    out:
        Optional array of length ``len(h) + 1`` receiving the interfaces.

    Returns
    -------
    numpy.ndarray or None
        ``None`` for land columns or columns with no thickness.
    """
    h_arr = np.asarray(h, dtype=float)
    htot = float(np.sum(h_arr))
    if not mask * htot > 0.0:
        return None

    dilate = depth / htot
    nz = h_arr.size
    e = np.empty(nz + 1) if out is None else out
    e[nz] = -depth
    for k in range(nz - 1, -1, -1):
        e[k] = e[k + 1] + dilate * h_arr[k]
    return e


@dataclass
class HorizontalGrid:
    """Per-column bathymetry, mask and location of the target model grid.

    Parameters
    ----------
    depth:
        Positive bathymetric depth of each column, shape ``(ny, nx)``, in the
        model's depth unit.
    mask:
        Land/ocean mask (0 on land), same shape as ``depth``.
    lat, lon:
        Optional geographic coordinates used in diagnostics.
    bounds:
        ``(js, je, is, ie)`` half-open index bounds of the computational
        domain; the full array when omitted.
    """

    depth: np.ndarray
    mask: np.ndarray
    lat: Optional[np.ndarray] = None
    lon: Optional[np.ndarray] = None
    bounds: Optional[Tuple[int, int, int, int]] = field(default=None)

    def __post_init__(self) -> None:
        self.depth = np.asarray(self.depth, dtype=float)
        self.mask = np.asarray(self.mask, dtype=float)
        if self.depth.ndim != 2:
            raise ConfigurationError("grid depth must be a two dimensional (ny, nx) array")
        if self.mask.shape != self.depth.shape:
            raise ConfigurationError(
                f"grid mask shape {self.mask.shape} does not match depth shape {self.depth.shape}"
            )
        for name in ("lat", "lon"):
            value = getattr(self, name)
            if value is not None:
                arr = np.asarray(value, dtype=float)
                if arr.shape != self.depth.shape:
                    raise ConfigurationError(f"grid {name} must have shape {self.depth.shape}")
                setattr(self, name, arr)
        ny, nx = self.depth.shape
        if self.bounds is None:
            self.bounds = (0, ny, 0, nx)
        js, je, is_, ie = self.bounds
        if not (0 <= js <= je <= ny and 0 <= is_ <= ie <= nx):
            raise ConfigurationError(f"grid bounds {self.bounds} exceed the array shape {(ny, nx)}")

    @classmethod
    def uniform(cls, depth: float, shape: Tuple[int, int]) -> "HorizontalGrid":
        """All-ocean grid of constant depth."""
        return cls(depth=np.full(shape, float(depth)), mask=np.ones(shape))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.depth.shape

    def rows(self) -> range:
        js, je, _, _ = self.bounds
        return range(js, je)

    def columns(self, rows: Optional[range] = None) -> Iterator[Tuple[int, int]]:
        """Iterate over ``(j, i)`` indices of the computational domain."""
        _, _, is_, ie = self.bounds
        for j in self.rows() if rows is None else rows:
            for i in range(is_, ie):
                yield j, i

    def location(self, j: int, i: int) -> str:
        """Human readable position of column ``(j, i)``."""
        if self.lat is None or self.lon is None:
            return f"(j={j}, i={i})"
        return f"{self.lat[j, i]:7.2f} N {self.lon[j, i]:7.2f} E"
