r"""Implicit estimates of edge slopes for high-order reconstructions.

Edge slopes are the derivatives of the reconstructed profile at the cell
interfaces.  Both schemes couple all edges of a column through a tridiagonal
system

.. math::

    \alpha u'_{i-1/2} + u'_{i+1/2} + \beta u'_{i+3/2} = \sum_j c_j \bar{u}_j

whose right-hand side combines two (third order, ``h3``) or four (fifth order,
``h5``) neighbouring cell averages.  There are ``N+1`` unknowns and the
interior stencils give ``N-1`` equations; the two boundary edges are closed by
fitting a polynomial through the cells next to each boundary (its integral over
every cell must equal the cell content ``u*h``) and evaluating its derivative
at the boundary.

Two formulas for the boundary moments are retained:

``EdgeSlopeFormula.LEGACY_2018``
    raw monomial moments ``(x_{i+1}^j - x_i^j)/j``, kept so that historical
    results can be reproduced bit for bit;
``EdgeSlopeFormula.REVISED``
    the same moments expanded about each cell midpoint, which is less prone
    to cancellation when the boundary cells are far from the origin.

Cell widths enter every denominator together with ``h_neglect`` so that the
estimate stays continuous as widths collapse to zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from ..constants import C1_12, C5_6, H_NEGLECT_DEFAULT, StencilSizes
from .solvers import evaluation_polynomial, solve_linear_system, solve_tridiagonal_system

__all__ = [
    "EdgeSlopeFormula",
    "EdgeSlopeEstimator",
    "edge_slopes_implicit_h3",
    "edge_slopes_implicit_h5",
    "estimate_edge_slopes",
]

_STENCILS = StencilSizes()


class EdgeSlopeFormula(str, Enum):
    """Selects how the boundary polynomial moments are evaluated."""

    LEGACY_2018 = "2018"
    REVISED = "revised"


def _as_column(h: np.ndarray, u: np.ndarray, min_cells: int, label: str) -> tuple[np.ndarray, np.ndarray]:
    h_arr = np.asarray(h, dtype=np.float64)
    u_arr = np.asarray(u, dtype=np.float64)
    if h_arr.ndim != 1 or h_arr.shape != u_arr.shape:
        raise ValueError(f"{label}: widths and averages must be 1-D arrays of equal length")
    if h_arr.size < min_cells:
        raise ValueError(f"{label} needs at least {min_cells} cells, got {h_arr.size}")
    return h_arr, u_arr


def _moment_matrix(widths: np.ndarray, formula: EdgeSlopeFormula) -> tuple[np.ndarray, np.ndarray]:
    """Return the cell integrals of ``x**j`` and the edge coordinates.

    ``x`` starts at 0 on the first edge of ``widths``.  Row ``i`` holds the
    integrals of ``1, x, ..., x**(n-1)`` over cell ``i``.
    """
    n = widths.size
    x = np.concatenate(([0.0], np.cumsum(widths)))
    A = np.empty((n, n))
    if formula is EdgeSlopeFormula.LEGACY_2018:
        for j in range(1, n + 1):
            A[:, j - 1] = (x[1:] ** j - x[:-1] ** j) / j
        return A, x

    dx = widths
    xavg = 0.5 * (x[1:] + x[:-1])
    A[:, 0] = dx
    A[:, 1] = dx * xavg
    A[:, 2] = dx * (xavg**2 + C1_12 * dx**2)
    A[:, 3] = dx * xavg * (xavg**2 + 0.25 * dx**2)
    if n > 4:
        A[:, 4] = dx * (xavg**4 + 0.5 * xavg**2 * dx**2 + 0.0125 * dx**4)
        A[:, 5] = dx * xavg * (xavg**4 + C5_6 * xavg**2 * dx**2 + 0.0625 * dx**4)
    return A, x


def _boundary_slope(widths: np.ndarray, values: np.ndarray, formula: EdgeSlopeFormula, at_end: bool) -> float:
    """Derivative of the moment-matched polynomial at one end of ``widths``."""

    A, x = _moment_matrix(widths, formula)
    coeffs = solve_linear_system(A, values * widths)
    powers = np.arange(1, coeffs.size)
    derivative = powers * coeffs[1:]
    return evaluation_polynomial(derivative, x[-1] if at_end else x[0])


def _tridiagonal_to_edges(lower, diag, upper, rhs, out: Optional[np.ndarray]) -> np.ndarray:
    slopes = solve_tridiagonal_system(lower, diag, upper, rhs)
    n = slopes.size - 1
    if out is None:
        out = np.empty((n, 2))
    elif out.shape != (n, 2):
        raise ValueError(f"out must have shape {(n, 2)}, got {out.shape}")
    out[:, 0] = slopes[:-1]
    out[:, 1] = slopes[1:]
    return out


def edge_slopes_implicit_h3(
    h: np.ndarray,
    u: np.ndarray,
    *,
    formula: EdgeSlopeFormula,
    h_neglect: float = H_NEGLECT_DEFAULT,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Third-order implicit edge slopes (fourth order on uniform grids).

    Parameters
    ----------
    h:
        Cell widths, length ``N >= 4``.
    u:
        Cell averages, length ``N``.
    formula:
        Boundary moment formula, see :class:`EdgeSlopeFormula`.
    h_neglect:
        Negligible width added to denominators.
    out:
        Optional ``(N, 2)`` array receiving the result.

    Returns
    -------
    numpy.ndarray
        ``(N, 2)`` array; row ``i`` holds the slopes at the top and bottom
        edge of cell ``i`` in units of ``u`` per unit of ``h``.
    """
    h_arr, u_arr = _as_column(h, u, _STENCILS.H3, "edge_slopes_implicit_h3")
    formula = EdgeSlopeFormula(formula)
    n = h_arr.size

    lower = np.zeros(n + 1)
    diag = np.ones(n + 1)
    upper = np.zeros(n + 1)
    rhs = np.zeros(n + 1)

    h0 = h_arr[:-1]
    h1 = h_arr[1:]
    h0h1 = h0 * h1
    h0_2 = h0 * h0
    h1_2 = h1 * h1
    d = 4.0 * h0h1 * (h0 + h1) + h1_2 * h1 + h0_2 * h0 + h_neglect**3

    a = -12.0 * h0h1 / d
    lower[1:n] = h1 * (h0_2 + h0h1 - h1_2) / d
    upper[1:n] = h0 * (h1_2 + h0h1 - h0_2) / d
    rhs[1:n] = a * u_arr[:-1] - a * u_arr[1:]

    m = _STENCILS.H3
    rhs[0] = _boundary_slope(h_arr[:m], u_arr[:m], formula, at_end=False)
    rhs[n] = _boundary_slope(h_arr[-m:], u_arr[-m:], formula, at_end=True)

    return _tridiagonal_to_edges(lower, diag, upper, rhs, out)


def _h5_system(h0: float, h1: float, h2: float, h3: float, h_neglect: float, bias: str) -> tuple[np.ndarray, np.ndarray]:
    """Build the 6x6 system for one fifth-order tridiagonal row.

    The unknowns are ``(alpha, beta, a, b, c, d)``; the edge of interest sits
    between the cells of widths ``h1`` and ``h2`` for the centred stencil,
    between ``h0`` and ``h1`` for ``bias="right"`` and between ``h2`` and
    ``h3`` for ``bias="left"``.
    """
    g = h0 + h1
    dk = [(h1**p - g**p) / (h0 + h_neglect) for p in range(2, 7)]
    g = h2 + h3
    nk = [(g**p - h2**p) / (h3 + h_neglect) for p in range(2, 7)]
    d2, d3, d4, d5, d6 = dk
    n2, n3, n4, n5, n6 = nk

    A = np.array(
        [
            [0.0, 0.0, 1.0, 1.0, 1.0, 1.0],
            [1.0, 1.0, -0.5 * d2, 0.5 * h1, -0.5 * h2, -0.5 * n2],
            [h1, -h2, -d3 / 6.0, h1**2 / 6.0, h2**2 / 6.0, n3 / 6.0],
            [-(h1**2) / 2.0, -(h2**2) / 2.0, d4 / 24.0, -(h1**3) / 24.0, h2**3 / 24.0, n4 / 24.0],
            [h1**3 / 6.0, -(h2**3) / 6.0, -d5 / 120.0, h1**4 / 120.0, h2**4 / 120.0, n5 / 120.0],
            [-(h1**4) / 24.0, -(h2**4) / 24.0, d6 / 720.0, -(h1**5) / 720.0, h2**5 / 720.0, n6 / 720.0],
        ]
    )
    b = np.array([0.0, -1.0, 0.0, 0.0, 0.0, 0.0])

    if bias == "right":
        s = h0 + h1
        A[2:, 0] = [s, -(s**2) / 2.0, s**3 / 6.0, -(s**4) / 24.0]
        A[2:, 1] = 0.0
        b[2:] = [-h1, h1**2 / 2.0, -(h1**3) / 6.0, h1**4 / 24.0]
    elif bias == "left":
        s = h2 + h3
        A[2:, 0] = 0.0
        A[2:, 1] = [-s, -(s**2) / 2.0, -(s**3) / 6.0, -(s**4) / 24.0]
        b[2:] = [h2, h2**2 / 2.0, h2**3 / 6.0, h2**4 / 24.0]
    return A, b


def edge_slopes_implicit_h5(
    h: np.ndarray,
    u: np.ndarray,
    *,
    formula: EdgeSlopeFormula,
    h_neglect: float = H_NEGLECT_DEFAULT,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Fifth-order implicit edge slopes.

    The centred four-cell stencil only applies to edges ``2 .. N-2``; edges
    ``1`` and ``N-1`` use right- and left-biased stencils over the four cells
    nearest the boundary, and edges ``0`` and ``N`` come from a quintic fitted
    through the six boundary cells.  The stencil coefficients have no tractable
    closed form on non-uniform meshes, so one 6x6 system is solved per edge.

    Parameters and return value are those of :func:`edge_slopes_implicit_h3`,
    with ``N >= 6``.
    """
    h_arr, u_arr = _as_column(h, u, _STENCILS.H5, "edge_slopes_implicit_h5")
    formula = EdgeSlopeFormula(formula)
    n = h_arr.size

    lower = np.zeros(n + 1)
    diag = np.ones(n + 1)
    upper = np.zeros(n + 1)
    rhs = np.zeros(n + 1)

    def _fill_row(row: int, first: int, bias: str) -> None:
        widths = h_arr[first:first + 4]
        A, b = _h5_system(*widths, h_neglect, bias)
        coeffs = solve_linear_system(A, b)
        lower[row] = coeffs[0]
        upper[row] = coeffs[1]
        rhs[row] = float(np.dot(coeffs[2:], u_arr[first:first + 4]))

    for k in range(1, n - 2):
        _fill_row(k + 1, k - 1, "centred")
    _fill_row(1, 0, "right")
    _fill_row(n - 1, n - 4, "left")

    m = _STENCILS.H5
    rhs[0] = _boundary_slope(h_arr[:m], u_arr[:m], formula, at_end=False)
    rhs[n] = _boundary_slope(h_arr[-m:], u_arr[-m:], formula, at_end=True)

    return _tridiagonal_to_edges(lower, diag, upper, rhs, out)


def estimate_edge_slopes(
    order: int,
    h: np.ndarray,
    u: np.ndarray,
    *,
    formula: EdgeSlopeFormula,
    h_neglect: float = H_NEGLECT_DEFAULT,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Dispatch to the third- (``order=3``) or fifth-order (``order=5``) scheme."""

    if order == 3:
        return edge_slopes_implicit_h3(h, u, formula=formula, h_neglect=h_neglect, out=out)
    if order == 5:
        return edge_slopes_implicit_h5(h, u, formula=formula, h_neglect=h_neglect, out=out)
    raise ValueError(f"edge slope order must be 3 or 5, got {order!r}")


@dataclass(frozen=True)
class EdgeSlopeEstimator:
    """Configured edge-slope estimator.

    Parameters
    ----------
    order:
        3 or 5.
    formula:
        Boundary moment formula; accepts the enum or its string value.
    h_neglect:
        Negligible width added to denominators.
    """

    order: int
    formula: EdgeSlopeFormula
    h_neglect: float = H_NEGLECT_DEFAULT

    def __post_init__(self) -> None:
        if self.order not in (3, 5):
            raise ValueError(f"edge slope order must be 3 or 5, got {self.order!r}")
        object.__setattr__(self, "formula", EdgeSlopeFormula(self.formula))
        if not self.h_neglect >= 0.0:
            raise ValueError("h_neglect must be non-negative")

    @property
    def min_cells(self) -> int:
        return _STENCILS.H3 if self.order == 3 else _STENCILS.H5

    def estimate(self, h: np.ndarray, u: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Return the ``(N, 2)`` edge slopes of one column."""
        return estimate_edge_slopes(
            self.order, h, u, formula=self.formula, h_neglect=self.h_neglect, out=out
        )
