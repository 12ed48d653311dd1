"""Reading the target ocean grid from netCDF."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
from netCDF4 import Dataset

from ..errors import ConfigurationError
from ..grid import HorizontalGrid

__all__ = ["TargetGrid", "read_target_grid"]

logger = logging.getLogger(__name__)


@dataclass
class TargetGrid:
    """Horizontal grid plus the layer thicknesses of every column."""

    grid: HorizontalGrid
    h: np.ndarray

    @property
    def n_layers(self) -> int:
        return int(self.h.shape[0])


def _read_2d(ds: Dataset, name: str, path: Path) -> np.ndarray:
    if name not in ds.variables:
        raise ConfigurationError(f"variable {name} not found in target grid {path}")
    data = np.array(ds.variables[name][:], dtype=float)
    if data.ndim != 2:
        raise ConfigurationError(f"{name} in {path} must be two dimensional, got shape {data.shape}")
    return data


def read_target_grid(
    path: Path | str,
    *,
    depth_var: str = "depth",
    mask_var: Optional[str] = "mask",
    thickness_var: Optional[str] = "h",
    lat_var: Optional[str] = None,
    lon_var: Optional[str] = None,
    layers: Optional[Sequence[float]] = None,
) -> TargetGrid:
    """Load bathymetry, mask and layer thicknesses of the target grid.

    ``layers``, when given, is broadcast to every column and ``thickness_var``
    is not read.  A missing ``mask_var`` variable marks every column with a
    positive depth as ocean.
    """
    src = Path(path)
    try:
        ds = Dataset(str(src), mode="r")
    except (OSError, RuntimeError) as exc:
        raise ConfigurationError(f"cannot open target grid {src}: {exc}") from exc
    ds.set_auto_mask(False)
    with ds:
        depth = _read_2d(ds, depth_var, src)
        depth = np.where(np.isfinite(depth), depth, 0.0)
        if mask_var is not None and mask_var in ds.variables:
            mask = _read_2d(ds, mask_var, src)
        else:
            if mask_var is not None:
                logger.info("No %s in %s; deriving the ocean mask from %s", mask_var, src, depth_var)
            mask = (depth > 0.0).astype(float)
        lat = _read_2d(ds, lat_var, src) if lat_var is not None else None
        lon = _read_2d(ds, lon_var, src) if lon_var is not None else None

        if layers is not None:
            dz = np.asarray(layers, dtype=float)
            h = np.broadcast_to(dz[:, None, None], (dz.size,) + depth.shape).copy()
        else:
            if thickness_var is None or thickness_var not in ds.variables:
                raise ConfigurationError(f"layer thickness variable {thickness_var} not found in {src}")
            h = np.array(ds.variables[thickness_var][:], dtype=float)
            if h.ndim != 3:
                raise ConfigurationError(f"{thickness_var} in {src} must have shape (z, y, x), got {h.shape}")

    grid = HorizontalGrid(depth=depth, mask=mask, lat=lat, lon=lon)
    if h.shape[1:] != grid.shape:
        raise ConfigurationError(f"layer thickness shape {h.shape} does not match grid shape {grid.shape}")
    logger.info("Read target grid %s: %d layers on %s columns", src, h.shape[0], grid.shape)
    return TargetGrid(grid=grid, h=h)
