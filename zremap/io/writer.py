"""Output helper utilities.

The remapped field is written to netCDF with :mod:`netCDF4`, per-layer
statistics to CSV through :mod:`pandas` and the run summary to JSON.  All
functions create destination directories when necessary.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd
from netCDF4 import Dataset

from ..grid import HorizontalGrid


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_field_netcdf(
    path: Path,
    name: str,
    field: np.ndarray,
    h: np.ndarray,
    grid: HorizontalGrid,
    *,
    attrs: Optional[Mapping[str, Any]] = None,
) -> None:
    """Write the remapped field with the thicknesses and grid it lives on.

    Parameters
    ----------
    path:
        Destination file path.
    name:
        Variable name of the field.
    field, h:
        Arrays of shape ``(nz, ny, nx)``.
    grid:
        Horizontal grid providing ``depth`` and ``mask``.
    attrs:
        Extra attributes attached to the field variable.
    """
    _ensure_parent(path)
    nz, ny, nx = field.shape
    with Dataset(str(path), mode="w") as ds:
        ds.createDimension("zl", nz)
        ds.createDimension("yh", ny)
        ds.createDimension("xh", nx)
        var = ds.createVariable(name, "f8", ("zl", "yh", "xh"))
        var[:] = field
        for key, value in (attrs or {}).items():
            var.setncattr(key, value)
        thickness = ds.createVariable("h", "f8", ("zl", "yh", "xh"))
        thickness[:] = h
        depth = ds.createVariable("depth", "f8", ("yh", "xh"))
        depth[:] = grid.depth
        mask = ds.createVariable("mask", "f8", ("yh", "xh"))
        mask[:] = grid.mask


def layer_summary(field: np.ndarray, h: np.ndarray, grid: HorizontalGrid) -> pd.DataFrame:
    """Return thickness-weighted statistics of every layer over ocean columns."""

    ocean = grid.mask > 0.0
    rows = []
    for k in range(field.shape[0]):
        values = field[k][ocean]
        weights = h[k][ocean]
        total = float(np.sum(weights))
        rows.append(
            {
                "layer": k,
                "ocean_columns": int(values.size),
                "h_mean": float(np.mean(weights)) if values.size else np.nan,
                "value_min": float(np.min(values)) if values.size else np.nan,
                "value_max": float(np.max(values)) if values.size else np.nan,
                "value_mean": float(np.sum(values * weights) / total) if total > 0.0 else np.nan,
            }
        )
    return pd.DataFrame(rows)


def write_layer_summary(df: pd.DataFrame, path: Path) -> None:
    """Write per-layer statistics to a CSV file."""
    _ensure_parent(path)
    df.to_csv(path, index=False)


def write_summary(summary: Mapping[str, Any], path: Path) -> None:
    """Write a summary dictionary to ``summary.json``.

    The JSON file is formatted with a small indentation for human
    readability.
    """
    _ensure_parent(path)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(summary, fh, indent=2, sort_keys=True)
