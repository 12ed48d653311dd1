"""Remap tracers from a depth-space source onto z-star model layers.

For every ocean column the target interfaces are built from the layer
thicknesses and the bathymetry (:func:`zremap.grid.zstar_interfaces`).  Each
target layer then averages a reconstruction of the source column over the
depth range it covers:

* with true cell edges in the source file the reconstruction is piecewise
  linear, using the limited slope of :func:`find_limited_slope`;
* with cell centres only, the linear interpolation between adjacent centres
  is integrated.

Layers entirely above (below) the source data take the shallowest (deepest)
source value; layers that only partly extend past the data blend that value
with the interior average in proportion to the depth outside the data.
"""
from __future__ import annotations

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable, NamedTuple, Optional, Sequence

import numpy as np

from .constants import LAND_VALUE_DEFAULT, MISSING_VALUE_RTOL
from .errors import ConfigurationError, MissingDataError, SourceReadError
from .grid import HorizontalGrid, zstar_interfaces
from .io.source import read_source_field, read_z_edges
from .numerics.overlap import OverlapBuffers, find_limited_slope, find_overlap
from .warnings import SourceDataWarning

__all__ = [
    "ColumnRemapper",
    "RemapResult",
    "RemapStats",
    "RemapWorkspace",
    "fill_missing_values",
    "remap_field",
    "remap_from_source",
]

logger = logging.getLogger(__name__)


@dataclass
class RemapWorkspace:
    """Scratch buffers owned by one worker and reused across columns."""

    overlap: OverlapBuffers
    e: np.ndarray
    column: np.ndarray

    @classmethod
    def allocate(cls, n_source: int, n_target: int) -> "RemapWorkspace":
        return cls(
            overlap=OverlapBuffers.allocate(n_source + 1),
            e=np.zeros(n_target + 1),
            column=np.zeros(n_target),
        )


@dataclass
class RemapStats:
    """Counts of how target layers were filled."""

    columns: int = 0
    land_columns: int = 0
    layers_above: int = 0
    layers_below: int = 0
    layers_blended: int = 0

    def merge(self, other: "RemapStats") -> None:
        for name, value in asdict(other).items():
            setattr(self, name, getattr(self, name) + value)

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class RemapResult(NamedTuple):
    """Remapped field and whether the source could be used."""

    field: np.ndarray
    success: bool


@dataclass
class ColumnRemapper:
    """Remaps single columns from a fixed source axis onto z-star layers.

    Parameters
    ----------
    z_edges:
        Decreasing source depths: interfaces (``n_levels + 1`` values) when
        ``has_edges`` is true, cell centres (``n_levels`` values) otherwise.
    has_edges:
        Interpretation of ``z_edges``.
    land_value:
        Value assigned to every layer of land or empty columns.
    """

    z_edges: np.ndarray
    has_edges: bool
    land_value: float = LAND_VALUE_DEFAULT
    n_levels: int = field(init=False)

    def __post_init__(self) -> None:
        self.z_edges = np.asarray(self.z_edges, dtype=float)
        self.n_levels = self.z_edges.size - 1 if self.has_edges else self.z_edges.size
        if self.n_levels < 1:
            raise ConfigurationError("source axis must describe at least one level")

    @property
    def n_cells(self) -> int:
        """Number of intervals searched by the overlap computation."""
        return self.n_levels if self.has_edges else self.n_levels - 1

    @property
    def data_top(self) -> float:
        return float(self.z_edges[0])

    @property
    def data_bottom(self) -> float:
        return float(self.z_edges[self.n_cells]) if self.has_edges else float(self.z_edges[-1])

    def remap_column(
        self,
        tr_1d: np.ndarray,
        h: np.ndarray,
        depth: float,
        mask: float = 1.0,
        out: Optional[np.ndarray] = None,
        workspace: Optional[RemapWorkspace] = None,
        stats: Optional[RemapStats] = None,
    ) -> np.ndarray:
        """Remap one source column onto the z-star layers of thickness ``h``.

        Parameters
        ----------
        tr_1d:
            Source values, ``n_levels`` entries, shallowest first.
        h:
            Target layer thicknesses, top to bottom.
        depth:
            Positive bathymetric depth of the column.
        mask:
            Ocean mask; 0 marks land.
        out:
            Optional array receiving the ``len(h)`` remapped values.
        workspace:
            Scratch buffers sized for at least this column.
        stats:
            Counters updated with how the layers were filled.
        """
        h_arr = np.asarray(h, dtype=float)
        nz = h_arr.size
        if out is None:
            out = np.empty(nz)
        if workspace is None or workspace.e.size < nz + 1 or workspace.overlap.wt.size < self.n_cells:
            workspace = RemapWorkspace.allocate(self.n_levels, nz)
        if stats is None:
            stats = RemapStats()
        stats.columns += 1

        e = zstar_interfaces(h_arr, depth, mask, out=workspace.e[: nz + 1])
        if e is None:
            out[:] = self.land_value
            stats.land_columns += 1
            return out

        tr = np.asarray(tr_1d, dtype=float)
        if tr.size != self.n_levels:
            raise ConfigurationError(f"source column has {tr.size} values, expected {self.n_levels}")
        top_val = float(tr[0])
        bot_val = float(tr[self.n_levels - 1])
        if self.n_cells < 1:
            # A single level of centres carries no vertical structure.
            out[:] = top_val
            return out

        z_top_data = self.data_top
        z_bot_data = self.data_bottom
        k_start = 0
        slope_k = -1
        slope = 0.0
        for k in range(nz):
            e_top = e[k]
            e_bot = e[k + 1]
            if e_bot > z_top_data:
                out[k] = top_val
                stats.layers_above += 1
                continue
            if e_top < z_bot_data:
                out[k] = bot_val
                stats.layers_below += 1
                continue

            ov = find_overlap(self.z_edges, e_top, e_bot, self.n_cells, k_start, workspace.overlap)
            if ov is None:
                out[k] = bot_val
                stats.layers_below += 1
                continue

            if self.has_edges:
                value = 0.0
                for idx, kz in enumerate(ov.cells()):
                    if kz != ov.k_top and kz != ov.k_bot:
                        value += ov.weights[idx] * tr[kz]
                        continue
                    if kz != slope_k:
                        slope = 0.0
                        if 0 < kz < self.n_levels - 1:
                            slope = find_limited_slope(tr, self.z_edges, kz)
                        slope_k = kz
                    value += ov.weights[idx] * (tr[kz] + 0.5 * slope * (ov.z2[idx] + ov.z1[idx]))
            else:
                value = 0.0
                for idx, kz in enumerate(ov.cells()):
                    mean = 0.5 * (tr[kz] + tr[kz + 1])
                    if kz == ov.k_top or kz == ov.k_bot:
                        mean += 0.5 * (tr[kz + 1] - tr[kz]) * (ov.z2[idx] + ov.z1[idx])
                    value += ov.weights[idx] * mean
            k_start = ov.k_bot

            above = e_top > z_top_data
            below = e_bot < z_bot_data
            if above or below:
                inner = min(e_top, z_top_data) - max(e_bot, z_bot_data)
                value = (
                    (e_top - z_top_data if above else 0.0) * top_val
                    + inner * value
                    + (z_bot_data - e_bot if below else 0.0) * bot_val
                ) / (e_top - e_bot)
                stats.layers_blended += 1
            out[k] = value
        return out


def _is_missing(values: np.ndarray, missing: float) -> np.ndarray:
    if np.isnan(missing):
        return np.isnan(values)
    return np.abs(values - missing) <= MISSING_VALUE_RTOL * abs(missing)


def fill_missing_values(
    tr_in: np.ndarray,
    grid: HorizontalGrid,
    missing: float,
    *,
    land_value: float = LAND_VALUE_DEFAULT,
    zero_surface: bool = False,
    label: str = "tracer",
) -> np.ndarray:
    """Replace missing-value sentinels in ``tr_in`` in place.

    Land columns get ``land_value`` at the surface.  A sentinel at an ocean
    surface point is set to zero with a warning when ``zero_surface`` is
    true and raises :class:`MissingDataError` otherwise.  Below the surface,
    sentinels repeat the value above them.

    Parameters
    ----------
    tr_in:
        Source field of shape ``(nz, ny, nx)``.
    grid:
        Horizontal grid providing the mask, the computational bounds and the
        locations reported in messages.
    missing:
        The sentinel value; matches use a relative tolerance of ``1e-6``.
    """
    js, je, is_, ie = grid.bounds
    surface = tr_in[0, js:je, is_:ie]
    land = grid.mask[js:je, is_:ie] == 0.0
    surface[land] = land_value

    bad = ~land & _is_missing(surface, missing)
    if np.any(bad):
        for jj, ii in np.argwhere(bad):
            msg = (
                f"Missing value of {label} found in an ocean point at "
                f"{grid.location(jj + js, ii + is_)}"
            )
            if not zero_surface:
                raise MissingDataError(msg)
            warnings.warn(msg, SourceDataWarning)
        surface[bad] = 0.0
        logger.info("Zeroed %d missing surface values of %s", int(np.count_nonzero(bad)), label)

    for k in range(1, tr_in.shape[0]):
        level = tr_in[k, js:je, is_:ie]
        above = tr_in[k - 1, js:je, is_:ie]
        gaps = _is_missing(level, missing)
        level[gaps] = above[gaps]
    return tr_in


def _row_chunks(rows: Sequence[int], jobs: int) -> list[list[int]]:
    n_chunks = max(1, min(int(jobs), len(rows)))
    return [list(chunk) for chunk in np.array_split(np.asarray(rows, dtype=int), n_chunks) if chunk.size]


def remap_field(
    tr_in: np.ndarray,
    remapper: ColumnRemapper,
    h: np.ndarray,
    grid: HorizontalGrid,
    *,
    jobs: int = 1,
    stats: Optional[RemapStats] = None,
) -> np.ndarray:
    """Remap every computational column of ``tr_in`` onto thicknesses ``h``.

    ``tr_in`` has shape ``(n_levels, ny, nx)`` and ``h`` shape ``(nz, ny, nx)``.
    Columns outside the computational bounds are set to the land value.
    With ``jobs > 1`` rows are split into chunks processed by a thread pool;
    every worker owns its workspace and counters.
    """
    h_arr = np.asarray(h, dtype=float)
    if h_arr.ndim != 3 or h_arr.shape[1:] != grid.shape:
        raise ConfigurationError(f"thickness shape {h_arr.shape} does not match grid shape {grid.shape}")
    if tr_in.shape != (remapper.n_levels,) + grid.shape:
        raise ConfigurationError(
            f"source field shape {tr_in.shape} does not match {(remapper.n_levels,) + grid.shape}"
        )
    nz = h_arr.shape[0]
    out = np.full(h_arr.shape, remapper.land_value, dtype=float)

    def _work(rows: Iterable[int]) -> RemapStats:
        workspace = RemapWorkspace.allocate(remapper.n_levels, nz)
        local = RemapStats()
        for j, i in grid.columns(rows):
            remapper.remap_column(
                tr_in[:, j, i],
                h_arr[:, j, i],
                grid.depth[j, i],
                grid.mask[j, i],
                out=workspace.column,
                workspace=workspace,
                stats=local,
            )
            out[:, j, i] = workspace.column
        return local

    rows = list(grid.rows())
    if jobs <= 1 or len(rows) < 2:
        results = [_work(rows)]
    else:
        chunks = _row_chunks(rows, jobs)
        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            results = list(executor.map(_work, chunks))

    total = RemapStats() if stats is None else stats
    for local in results:
        total.merge(local)
    logger.debug("Remapped %d columns (%d land)", total.columns, total.land_columns)
    return out


def remap_from_source(
    path: Path | str,
    field_name: str,
    h: np.ndarray,
    grid: HorizontalGrid,
    unit_scale: float = 1.0,
    missing_value: Optional[float] = None,
    land_value: float = LAND_VALUE_DEFAULT,
    *,
    zero_surface: bool = False,
    time_index: int = 0,
    jobs: int = 1,
    stats: Optional[RemapStats] = None,
) -> RemapResult:
    """Initialise a tracer on z-star layers from a depth-space netCDF file.

    Parameters
    ----------
    path:
        Source netCDF file.
    field_name:
        Name of the 3-D or 4-D source variable.
    h:
        Target layer thicknesses, shape ``(nz, ny, nx)``.
    grid:
        Horizontal grid with the bathymetric depth and ocean mask.
    unit_scale:
        Factor converting file depths into the model's depth unit.
    missing_value:
        Sentinel of the source data; read from the ``missing_value`` (or
        ``_FillValue``) attribute when omitted.
    land_value:
        Value used in land columns.
    zero_surface:
        Zero missing ocean surface values with a warning instead of failing.
    time_index:
        Record read from four dimensional fields.
    jobs:
        Number of worker threads.
    stats:
        Optional counters updated during the remap.

    Returns
    -------
    RemapResult
        ``success`` is False, and the field filled with ``land_value``, when
        the source could not be read.

    Raises
    ------
    MissingDataError
        If a missing value sits at an ocean surface point and
        ``zero_surface`` is false.
    """
    h_arr = np.asarray(h, dtype=float)
    if h_arr.ndim != 3:
        raise ConfigurationError("target thickness must have shape (nz, ny, nx)")
    label = f"{field_name} in {path}"

    try:
        axis = read_z_edges(path, field_name, scale=unit_scale)
        tr_in = read_source_field(path, field_name, time_index=time_index)
    except SourceReadError as exc:
        logger.warning("remap_from_source: %s", exc)
        return RemapResult(np.full(h_arr.shape, land_value, dtype=float), False)

    if tr_in.shape[1:] != grid.shape:
        raise ConfigurationError(
            f"{label} has horizontal shape {tr_in.shape[1:]}, grid has {grid.shape}"
        )

    missing = missing_value if missing_value is not None else axis.missing_value
    if missing is None:
        warnings.warn(f"{label} has no missing_value attribute; missing-value filling is disabled", SourceDataWarning)
    else:
        fill_missing_values(tr_in, grid, missing, land_value=land_value, zero_surface=zero_surface, label=label)

    remapper = ColumnRemapper(axis.z_edges, axis.has_edges, land_value=land_value)
    field_out = remap_field(tr_in, remapper, h_arr, grid, jobs=jobs, stats=stats)
    logger.info("Initialised %s on %d layers", label, h_arr.shape[0])
    return RemapResult(field_out, True)
