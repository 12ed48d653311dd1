"""Reading source fields and their vertical axis from netCDF files.

Source fields are stored C-ordered as ``(z, y, x)`` or ``(time, z, y, x)``;
the vertical dimension is therefore the third from last.  The coordinate
variable of that dimension holds either cell centres or, when it carries an
``edges`` attribute, names a second variable with the cell interfaces.

All failures that leave the source unusable raise :class:`SourceReadError`;
callers treat these as recoverable.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from netCDF4 import Dataset

from ..constants import EDGES_ATTR, MISSING_VALUE_ATTRS
from ..errors import SourceReadError
from ..warnings import SourceDataWarning

__all__ = [
    "SourceAxis",
    "read_z_edges",
    "read_source_field",
]

logger = logging.getLogger(__name__)


@dataclass
class SourceAxis:
    """Vertical axis of a source field.

    Attributes
    ----------
    z_edges:
        Decreasing depths (negative downward) of the cell interfaces when
        ``has_edges`` is true, otherwise of the cell centres.
    n_levels:
        Number of vertical levels of the field.
    has_edges:
        Whether ``z_edges`` holds true interfaces (``n_levels + 1`` values).
    missing_value:
        Sentinel read from the field's attributes, if any.
    monotonic:
        Whether ``z_edges`` is strictly decreasing.
    dim_name, edge_name:
        Names of the vertical dimension and of the interface variable.
    """

    z_edges: np.ndarray
    n_levels: int
    has_edges: bool
    missing_value: Optional[float]
    monotonic: bool
    dim_name: str
    edge_name: Optional[str] = None


def _open(path: Path) -> Dataset:
    try:
        ds = Dataset(str(path), mode="r")
    except (OSError, RuntimeError) as exc:
        raise SourceReadError(f"Difficulties opening {path} - {exc}") from exc
    ds.set_auto_mask(False)
    return ds


def _field_variable(ds: Dataset, field_name: str, path: Path):
    if field_name not in ds.variables:
        raise SourceReadError(f"Difficulties finding variable {field_name} in {path}")
    var = ds.variables[field_name]
    if var.ndim < 3 or var.ndim > 4:
        raise SourceReadError(f"{field_name} in {path} has too many or too few dimensions ({var.ndim})")
    return var


def _missing_value(var) -> Optional[float]:
    attrs = var.ncattrs()
    for name in MISSING_VALUE_ATTRS:
        if name in attrs:
            value = np.asarray(var.getncattr(name), dtype=float).ravel()
            if value.size:
                return float(value[0])
    return None


def read_z_edges(path: Path | str, field_name: str, scale: float = 1.0) -> SourceAxis:
    """Read the vertical axis of ``field_name``.

    The depths are returned with a decreasing sign convention: if the first
    two values increase, the whole axis is negated.  The result is scaled by
    ``scale`` into the model's depth unit.

    Raises
    ------
    SourceReadError
        If the file, the field or its vertical coordinate cannot be read, or
        the field rank is not 3 or 4.
    """
    src = Path(path)
    tr_msg = f"{field_name} in {src}"
    with _open(src) as ds:
        var = _field_variable(ds, field_name, src)

        missing = _missing_value(var)

        dim_name = var.dimensions[-3]
        n_levels = len(ds.dimensions[dim_name])
        dim_msg = f"{dim_name} in {src}"
        if dim_name not in ds.variables:
            raise SourceReadError(f"Difficulties finding variable {dim_msg}")
        layer_var = ds.variables[dim_name]

        edge_name: Optional[str] = None
        has_edges = False
        if EDGES_ATTR in layer_var.ncattrs():
            edge_name = str(layer_var.getncattr(EDGES_ATTR))
            if edge_name in ds.variables:
                has_edges = True
            else:
                warnings.warn(f"Difficulties finding edge variable {edge_name} in {src}", SourceDataWarning)
        else:
            warnings.warn(f"{dim_msg} has no readable edges attribute; using cell centres", SourceDataWarning)

        if n_levels < 1:
            raise SourceReadError(f"{dim_msg} has no vertical levels")

        coord_name = edge_name if has_edges else dim_name
        z_edges = np.asarray(ds.variables[coord_name][:], dtype=float).ravel()

    expected = n_levels + 1 if has_edges else n_levels
    if z_edges.size != expected:
        raise SourceReadError(
            f"{coord_name} in {src} has {z_edges.size} values, expected {expected}"
        )

    if z_edges.size > 1 and z_edges[0] < z_edges[1]:
        z_edges = -z_edges
    monotonic = bool(np.all(np.diff(z_edges) < 0.0))
    if not monotonic:
        warnings.warn(f"{coord_name} in {src} is not monotonic", SourceDataWarning)

    if scale != 1.0:
        z_edges = scale * z_edges

    logger.info(
        "Read %d levels of %s (%s, has_edges=%s, missing_value=%s)",
        n_levels,
        tr_msg,
        edge_name if has_edges else dim_name,
        has_edges,
        missing,
    )
    return SourceAxis(
        z_edges=z_edges,
        n_levels=n_levels,
        has_edges=has_edges,
        missing_value=missing,
        monotonic=monotonic,
        dim_name=dim_name,
        edge_name=edge_name if has_edges else None,
    )


def read_source_field(path: Path | str, field_name: str, time_index: int = 0) -> np.ndarray:
    """Return ``field_name`` as a float array of shape ``(nz, ny, nx)``.

    Four dimensional fields are sampled at ``time_index``.
    """
    src = Path(path)
    with _open(src) as ds:
        var = _field_variable(ds, field_name, src)
        if var.ndim == 4:
            n_time = var.shape[0]
            if not 0 <= time_index < n_time:
                raise SourceReadError(
                    f"time index {time_index} out of range for {field_name} in {src} ({n_time} records)"
                )
            data = var[time_index, :, :, :]
        else:
            data = var[:, :, :]
    return np.array(data, dtype=float)
