"""Linear-algebra primitives and their Numba/NumPy parity."""

from __future__ import annotations

import importlib

import numpy as np
import pytest

from zremap.errors import NumericalError
from zremap.warnings import NumericalWarning


def _reload_solvers(monkeypatch: pytest.MonkeyPatch, disable_numba: bool):
    if disable_numba:
        monkeypatch.setenv("ZREMAP_DISABLE_NUMBA", "1")
    else:
        monkeypatch.delenv("ZREMAP_DISABLE_NUMBA", raising=False)
    module = importlib.import_module("zremap.numerics.solvers")
    return importlib.reload(module)


@pytest.fixture
def solvers_both(monkeypatch: pytest.MonkeyPatch):
    """Yield a loader for either path and restore the default afterwards."""

    yield lambda disable: _reload_solvers(monkeypatch, disable)
    monkeypatch.delenv("ZREMAP_DISABLE_NUMBA", raising=False)
    importlib.reload(importlib.import_module("zremap.numerics.solvers"))


@pytest.mark.parametrize("disable_numba", [False, True])
def test_solve_linear_system_matches_numpy(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    rng = np.random.default_rng(3)
    A = rng.normal(size=(6, 6)) + 6.0 * np.eye(6)
    b = rng.normal(size=6)
    x = solvers.solve_linear_system(A, b)
    np.testing.assert_allclose(A @ x, b, rtol=1e-12, atol=1e-12)
    assert solvers.kernel_status()["disabled_env"] is disable_numba


@pytest.mark.parametrize("disable_numba", [False, True])
def test_solve_linear_system_needs_pivoting(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    A = np.array([[0.0, 1.0], [2.0, 3.0]])
    b = np.array([1.0, 8.0])
    np.testing.assert_allclose(solvers.solve_linear_system(A, b), [2.5, 1.0])


@pytest.mark.parametrize("disable_numba", [False, True])
def test_singular_system_raises(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    A = np.array([[1.0, 2.0], [2.0, 4.0]])
    with pytest.raises(NumericalError):
        solvers.solve_linear_system(A, np.array([1.0, 2.0]))


def test_linear_system_rejects_mismatched_shapes() -> None:
    from zremap.numerics.solvers import solve_linear_system

    with pytest.raises(ValueError):
        solve_linear_system(np.eye(3), np.ones(2))


@pytest.mark.parametrize("disable_numba", [False, True])
def test_tridiagonal_matches_dense_solve(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    n = 7
    lower = np.full(n, 0.1)
    upper = np.full(n, 0.2)
    diag = np.ones(n)
    rhs = np.linspace(-1.0, 2.0, n)
    x = solvers.solve_tridiagonal_system(lower, diag, upper, rhs)

    dense = np.diag(diag) + np.diag(lower[1:], -1) + np.diag(upper[:-1], 1)
    np.testing.assert_allclose(x, np.linalg.solve(dense, rhs), rtol=1e-12)


@pytest.mark.parametrize("disable_numba", [False, True])
def test_tridiagonal_zero_pivot_raises(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    with pytest.raises(NumericalError):
        solvers.solve_tridiagonal_system(np.zeros(3), np.array([0.0, 1.0, 1.0]), np.zeros(3), np.ones(3))


@pytest.mark.parametrize("disable_numba", [False, True])
def test_evaluation_polynomial(solvers_both, disable_numba: bool) -> None:
    solvers = solvers_both(disable_numba)
    coeffs = np.array([1.0, -2.0, 0.5, 3.0])
    x = 1.7
    expected = 1.0 - 2.0 * x + 0.5 * x**2 + 3.0 * x**3
    assert solvers.evaluation_polynomial(coeffs, x) == pytest.approx(expected, rel=1e-14)


def test_failing_kernel_switches_to_numpy(solvers_both, monkeypatch: pytest.MonkeyPatch) -> None:
    solvers = solvers_both(False)

    def _broken(*args):
        raise RuntimeError("kernel unavailable")

    monkeypatch.setattr(solvers, "solve_tridiagonal_numba", _broken)
    n = 5
    with pytest.warns(NumericalWarning, match="solve_tridiagonal_system"):
        x = solvers.solve_tridiagonal_system(np.zeros(n), np.full(n, 2.0), np.zeros(n), np.ones(n))
    np.testing.assert_allclose(x, 0.5)
    status = solvers.kernel_status()
    assert status["backend"] == "mixed"
    assert list(status["fallbacks"]) == ["solve_tridiagonal_system"]
    assert solvers.evaluation_polynomial(np.array([1.0, 1.0]), 2.0) == pytest.approx(3.0)
