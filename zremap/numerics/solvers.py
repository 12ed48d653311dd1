"""Small dense and tridiagonal solvers used by the reconstruction schemes.

Both estimators in :mod:`zremap.numerics.edge_slopes` share these primitives.
The Numba kernels are preferred.  The NumPy path is used for every kernel when
``ZREMAP_DISABLE_NUMBA`` is set, and for a single kernel once it has failed at
call time.
"""
from __future__ import annotations

import numpy as np

from ..errors import NumericalError
from ..runtime.numba_config import KernelRegistry
from ._numba_kernels import (
    evaluation_polynomial_numba,
    solve_linear_system_numba,
    solve_tridiagonal_numba,
)

_KERNELS = KernelRegistry.from_env()

__all__ = [
    "solve_linear_system",
    "solve_tridiagonal_system",
    "evaluation_polynomial",
    "kernel_status",
]


def kernel_status() -> dict[str, object]:
    """Return the backend and any per-kernel fallbacks for run summaries."""

    return _KERNELS.status()


def solve_linear_system(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``A x = b`` for a small square system.

    Parameters
    ----------
    A:
        Square matrix of shape ``(n, n)``.
    b:
        Right-hand side of length ``n``.

    Returns
    -------
    numpy.ndarray
        Solution vector of length ``n``.

    Raises
    ------
    NumericalError
        If the matrix is singular.
    """
    A_arr = np.asarray(A, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    if A_arr.ndim != 2 or A_arr.shape[0] != A_arr.shape[1] or A_arr.shape[0] != b_arr.shape[0]:
        raise ValueError(f"incompatible system shapes {A_arr.shape} and {b_arr.shape}")

    if _KERNELS.use_numba("solve_linear_system"):
        try:
            x, ok = solve_linear_system_numba(A_arr, b_arr)
        except Exception as exc:  # pragma: no cover - exercised by fallback
            _KERNELS.mark_failed("solve_linear_system", exc)
        else:
            if not ok:
                raise NumericalError("The linear system is singular")
            return x

    try:
        return np.linalg.solve(A_arr, b_arr)
    except np.linalg.LinAlgError as exc:
        raise NumericalError("The linear system is singular") from exc


def _solve_tridiagonal_numpy(
    lower: np.ndarray, diag: np.ndarray, upper: np.ndarray, rhs: np.ndarray
) -> np.ndarray:
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
        x[k] -= c_prime[k + 1] * x[k + 1]
    return x


def solve_tridiagonal_system(
    lower: np.ndarray,
    diag: np.ndarray,
    upper: np.ndarray,
    rhs: np.ndarray,
) -> np.ndarray:
    """Solve a tridiagonal system with the Thomas sweep.

    Row ``k`` reads ``lower[k]*x[k-1] + diag[k]*x[k] + upper[k]*x[k+1] = rhs[k]``;
    ``lower[0]`` and ``upper[-1]`` are ignored.  No pivoting is performed, so
    the system is expected to be diagonally dominant, as the edge-slope systems
    are.
    """
    arrays = [np.asarray(a, dtype=np.float64) for a in (lower, diag, upper, rhs)]
    n = arrays[3].shape[0]
    if any(a.shape != (n,) for a in arrays):
        raise ValueError("tridiagonal coefficient arrays must share the shape of rhs")

    if _KERNELS.use_numba("solve_tridiagonal_system"):
        try:
            x = solve_tridiagonal_numba(*arrays)
        except ZeroDivisionError as exc:
            raise NumericalError("tridiagonal sweep met a zero pivot") from exc
        except Exception as exc:  # pragma: no cover - exercised by fallback
            _KERNELS.mark_failed("solve_tridiagonal_system", exc)
        else:
            if not np.all(np.isfinite(x)):
                raise NumericalError("tridiagonal sweep produced non-finite values (zero pivot)")
            return x

    with np.errstate(divide="ignore", invalid="ignore"):
        x = _solve_tridiagonal_numpy(*arrays)
    if not np.all(np.isfinite(x)):
        raise NumericalError("tridiagonal sweep produced non-finite values (zero pivot)")
    return x


def evaluation_polynomial(coeffs: np.ndarray, x: float) -> float:
    """Evaluate ``sum(coeffs[k] * x**k)``."""

    coeffs_arr = np.asarray(coeffs, dtype=np.float64)
    if _KERNELS.use_numba("evaluation_polynomial"):
        try:
            return float(evaluation_polynomial_numba(coeffs_arr, float(x)))
        except Exception as exc:  # pragma: no cover - exercised by fallback
            _KERNELS.mark_failed("evaluation_polynomial", exc)
    return float(np.polynomial.polynomial.polyval(float(x), coeffs_arr))
