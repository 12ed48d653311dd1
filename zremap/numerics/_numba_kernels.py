"""Numba-accelerated kernels for the small linear-algebra primitives.

The edge-slope estimators solve one dense 4x4 or 6x6 system per boundary (and
per interior edge for the fifth-order scheme) and one tridiagonal system per
column.  These loops are tiny but run once per column, so they are compiled
with Numba.

Usage
-----
These functions are not meant to be called directly.  The parent module
:mod:`zremap.numerics.solvers` dispatches to them and falls back to NumPy when
Numba is disabled through the environment or a kernel fails.

Notes
-----
* All kernels use ``cache=True`` to persist compiled bytecode across runs.
* Inputs are copied before elimination; callers' arrays are never modified.
"""
from __future__ import annotations

import numpy as np
from numba import njit

__all__ = [
    "solve_linear_system_numba",
    "solve_tridiagonal_numba",
    "evaluation_polynomial_numba",
]


@njit(cache=True)
def solve_linear_system_numba(A: np.ndarray, b: np.ndarray) -> tuple:
    """Gaussian elimination with partial pivoting.

    Returns ``(x, ok)``; ``ok`` is False when a zero pivot was met.
    """
    n = b.shape[0]
    M = A.copy()
    rhs = b.copy()
    x = np.zeros(n)

    for i in range(n):
        # Pivot on the largest remaining entry of column i
        p = i
        big = abs(M[i, i])
        for r in range(i + 1, n):
            if abs(M[r, i]) > big:
                big = abs(M[r, i])
                p = r
        if big == 0.0:
            return x, False
        if p != i:
            for c in range(n):
                tmp = M[i, c]
                M[i, c] = M[p, c]
                M[p, c] = tmp
            tmp = rhs[i]
            rhs[i] = rhs[p]
            rhs[p] = tmp

        inv = 1.0 / M[i, i]
        for c in range(i, n):
            M[i, c] = M[i, c] * inv
        rhs[i] = rhs[i] * inv

        for r in range(i + 1, n):
            f = M[r, i]
            if f != 0.0:
                for c in range(i, n):
                    M[r, c] = M[r, c] - f * M[i, c]
                rhs[r] = rhs[r] - f * rhs[i]

    for i in range(n - 1, -1, -1):
        acc = rhs[i]
        for c in range(i + 1, n):
            acc -= M[i, c] * x[c]
        x[i] = acc
    return x, True


@njit(cache=True)
def solve_tridiagonal_numba(
    lower: np.ndarray,
    diag: np.ndarray,
    upper: np.ndarray,
    rhs: np.ndarray,
) -> np.ndarray:
    """Thomas algorithm; ``lower[0]`` and ``upper[-1]`` are ignored."""
    n = rhs.shape[0]
    c_prime = np.zeros(n)
    x = np.zeros(n)

    beta = diag[0]
    x[0] = rhs[0] / beta
    for k in range(1, n):
        c_prime[k] = upper[k - 1] / beta
        beta = diag[k] - lower[k] * c_prime[k]
        x[k] = (rhs[k] - lower[k] * x[k - 1]) / beta
    for k in range(n - 2, -1, -1):
        x[k] = x[k] - c_prime[k + 1] * x[k + 1]
    return x


@njit(cache=True)
def evaluation_polynomial_numba(coeffs: np.ndarray, x: float) -> float:
    """Horner evaluation of ``sum(coeffs[k] * x**k)``."""
    acc = 0.0
    for k in range(coeffs.shape[0] - 1, -1, -1):
        acc = acc * x + coeffs[k]
    return acc
