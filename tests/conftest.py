from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from netCDF4 import Dataset  # noqa: E402


def write_source_file(
    path: Path,
    values: np.ndarray,
    z: Sequence[float],
    *,
    field: str = "temp",
    z_name: str = "depth",
    z_edges: Optional[Sequence[float]] = None,
    edge_name: str = "depth_edges",
    edges_attr: Optional[str] = None,
    missing_value: Optional[float] = None,
    fill_value: Optional[float] = None,
) -> Path:
    """Write a small depth-space source file.

    ``values`` is ``(nz, ny, nx)`` or ``(nt, nz, ny, nx)``.  With ``z_edges``
    the coordinate variable gets an ``edges`` attribute naming ``edge_name``
    unless ``edges_attr`` overrides it.
    """
    data = np.asarray(values, dtype=float)
    with Dataset(str(path), mode="w") as ds:
        dims = []
        if data.ndim == 4:
            ds.createDimension("time", data.shape[0])
            dims.append("time")
        nz, ny, nx = data.shape[-3:]
        ds.createDimension(z_name, nz)
        ds.createDimension("lat", ny)
        ds.createDimension("lon", nx)
        dims.extend([z_name, "lat", "lon"])

        coord = ds.createVariable(z_name, "f8", (z_name,))
        coord[:] = np.asarray(z, dtype=float)
        if z_edges is not None:
            ds.createDimension(edge_name, len(z_edges))
            edges = ds.createVariable(edge_name, "f8", (edge_name,))
            edges[:] = np.asarray(z_edges, dtype=float)
            coord.setncattr("edges", edges_attr or edge_name)
        elif edges_attr is not None:
            coord.setncattr("edges", edges_attr)

        var = ds.createVariable(field, "f8", tuple(dims), fill_value=fill_value)
        if missing_value is not None:
            var.setncattr("missing_value", missing_value)
        var.set_auto_mask(False)
        var[:] = data
    return path


def write_grid_file(
    path: Path,
    depth: np.ndarray,
    h: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> Path:
    """Write a target grid file with ``depth``, ``h`` and optionally ``mask``."""
    depth_arr = np.asarray(depth, dtype=float)
    h_arr = np.asarray(h, dtype=float)
    with Dataset(str(path), mode="w") as ds:
        ds.createDimension("zl", h_arr.shape[0])
        ds.createDimension("yh", depth_arr.shape[0])
        ds.createDimension("xh", depth_arr.shape[1])
        ds.createVariable("depth", "f8", ("yh", "xh"))[:] = depth_arr
        ds.createVariable("h", "f8", ("zl", "yh", "xh"))[:] = h_arr
        if mask is not None:
            ds.createVariable("mask", "f8", ("yh", "xh"))[:] = np.asarray(mask, dtype=float)
    return path


@pytest.fixture
def source_file(tmp_path: Path):
    """Factory writing source files into ``tmp_path``."""

    def _factory(values, z, name: str = "source.nc", **kwargs) -> Path:
        return write_source_file(tmp_path / name, values, z, **kwargs)

    return _factory


@pytest.fixture
def grid_file(tmp_path: Path):
    """Factory writing target grid files into ``tmp_path``."""

    def _factory(depth, h, mask=None, name: str = "grid.nc") -> Path:
        return write_grid_file(tmp_path / name, depth, h, mask)

    return _factory
