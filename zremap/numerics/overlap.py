"""Overlap weights between a depth range and a column of source cells.

Interface heights ``e`` decrease with increasing index: cell ``k`` spans
``e[k]`` (top) to ``e[k+1]`` (bottom).  Sub-cell positions are normalised by
the cell thickness and measured downward from the cell centre, so the top of a
cell is ``-0.5`` and its bottom ``+0.5``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

__all__ = [
    "Overlap",
    "OverlapBuffers",
    "find_overlap",
    "find_limited_slope",
]

logger = logging.getLogger(__name__)


@dataclass
class OverlapBuffers:
    """Reusable weight and bound buffers for :func:`find_overlap`."""

    wt: np.ndarray
    z1: np.ndarray
    z2: np.ndarray

    @classmethod
    def allocate(cls, n_cells: int) -> "OverlapBuffers":
        size = max(int(n_cells), 1)
        return cls(wt=np.zeros(size), z1=np.zeros(size), z2=np.zeros(size))


@dataclass
class Overlap:
    """Source cells ``k_top..k_bot`` overlapping one target range.

    ``weights[i]``, ``z1[i]`` and ``z2[i]`` refer to source cell ``k_top + i``.
    The weights sum to one; ``-0.5 <= z1 <= z2 <= 0.5``.
    """

    k_top: int
    k_bot: int
    weights: np.ndarray
    z1: np.ndarray
    z2: np.ndarray

    def __len__(self) -> int:
        return self.k_bot - self.k_top + 1

    def cells(self) -> range:
        return range(self.k_top, self.k_bot + 1)


def find_overlap(
    e: np.ndarray,
    z_top: float,
    z_bot: float,
    n_cells: int,
    k_start: int = 0,
    buffers: Optional[OverlapBuffers] = None,
) -> Optional[Overlap]:
    """Find the cells of ``e`` overlapping ``[z_bot, z_top]`` and their weights.

    Parameters
    ----------
    e:
        Decreasing interface heights, at least ``n_cells + 1`` values.
    z_top, z_bot:
        Top and bottom of the target range, ``z_top >= z_bot``.
    n_cells:
        Number of valid source cells.
    k_start:
        First cell to search.  Successive calls down a column pass the
        previous ``k_bot`` so that no cell is scanned twice.
    buffers:
        Optional scratch storage; the returned arrays are then views into it
        and are only valid until the next call.

    Returns
    -------
    Overlap or None
        ``None`` when the range lies entirely below the last valid cell.
    """
    k_top = -1
    for k in range(max(int(k_start), 0), n_cells):
        if e[k + 1] < z_top:
            k_top = k
            break
    if k_top < 0:
        return None

    if buffers is None:
        buffers = OverlapBuffers.allocate(n_cells)
    wt, z1, z2 = buffers.wt, buffers.z1, buffers.z2

    k = k_top
    if e[k + 1] <= z_bot:
        # The whole range sits inside one cell.
        Ih = 0.0
        if e[k] != e[k + 1]:
            Ih = 1.0 / (e[k] - e[k + 1])
        e_c = 0.5 * (e[k] + e[k + 1])
        wt[0] = 1.0
        z1[0] = (e_c - min(e[k], z_top)) * Ih
        z2[0] = (e_c - z_bot) * Ih
        return Overlap(k_top, k_top, wt[:1], z1[:1], z2[:1])

    wt[0] = min(e[k], z_top) - e[k + 1]
    if e[k] != e[k + 1]:
        z1[0] = (0.5 * (e[k] + e[k + 1]) - min(e[k], z_top)) / (e[k] - e[k + 1])
    else:
        z1[0] = -0.5
    z2[0] = 0.5

    k_bot = n_cells - 1
    for k in range(k_top + 1, n_cells):
        i = k - k_top
        if e[k + 1] <= z_bot:
            k_bot = k
            wt[i] = e[k] - z_bot
            z1[i] = -0.5
            if e[k] != e[k + 1]:
                z2[i] = (0.5 * (e[k] + e[k + 1]) - z_bot) / (e[k] - e[k + 1])
            else:
                z2[i] = 0.5
            break
        wt[i] = e[k] - e[k + 1]
        z1[i] = -0.5
        z2[i] = 0.5

    count = k_bot - k_top + 1
    tot_wt = float(np.sum(wt[:count]))
    if tot_wt > 0.0:
        wt[:count] /= tot_wt
    else:
        logger.debug(
            "Non-positive overlap weight for range [%g, %g]; using uniform weights over cells %d..%d",
            z_bot,
            z_top,
            k_top,
            k_bot,
        )
        wt[:count] = 1.0 / count
    return Overlap(k_top, k_bot, wt[:count], z1[:count], z2[:count])


def find_limited_slope(values: np.ndarray, e: np.ndarray, k: int) -> float:
    """Return the monotonicity-limited slope of ``values`` in cell ``k``.

    The slope is normalised by the cell thickness, positive downward, so the
    reconstruction inside cell ``k`` is ``values[k] + slope * z`` for
    ``-0.5 <= z <= 0.5``.  It vanishes at local extrema and is clamped so that
    the reconstruction stays within the range of ``values[k-1:k+2]``.

    Only interior cells (``0 < k < len(values) - 1``) have a slope.
    """
    if not 0 < k < len(values) - 1:
        raise ValueError(f"limited slope needs an interior cell, got k={k} for {len(values)} cells")

    v_up, v, v_dn = float(values[k - 1]), float(values[k]), float(values[k + 1])
    d1 = 0.5 * (e[k - 1] - e[k + 1])
    d2 = 0.5 * (e[k] - e[k + 2])
    if (v - v_up) * (v - v_dn) >= 0.0 or d1 * d2 <= 0.0:
        return 0.0

    slope = (d1**2 * (v_dn - v) + d2**2 * (v - v_up)) * ((e[k] - e[k + 1]) / (d1 * d2 * (d1 + d2)))
    # S.-J. Lin's form of the PLM limiter.
    v_max = max(v_up, v, v_dn)
    v_min = min(v_up, v, v_dn)
    return float(np.copysign(min(abs(slope), 2.0 * (v_max - v), 2.0 * (v - v_min)), slope))
