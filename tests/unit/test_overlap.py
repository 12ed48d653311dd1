from __future__ import annotations

import numpy as np
import pytest

from zremap.numerics.overlap import OverlapBuffers, find_limited_slope, find_overlap


@pytest.fixture
def edges() -> np.ndarray:
    # Four cells of thickness 10 between 0 and -40.
    return np.array([0.0, -10.0, -20.0, -30.0, -40.0])


def test_overlap_inside_single_cell(edges: np.ndarray) -> None:
    ov = find_overlap(edges, -12.0, -18.0, 4)
    assert (ov.k_top, ov.k_bot) == (1, 1)
    assert len(ov) == 1
    np.testing.assert_allclose(ov.weights, [1.0])
    assert ov.z1[0] == pytest.approx(-0.3)
    assert ov.z2[0] == pytest.approx(0.3)


def test_overlap_spanning_cells(edges: np.ndarray) -> None:
    ov = find_overlap(edges, -5.0, -25.0, 4)
    assert list(ov.cells()) == [0, 1, 2]
    np.testing.assert_allclose(ov.weights, [0.25, 0.5, 0.25])
    np.testing.assert_allclose(ov.z1, [0.0, -0.5, -0.5])
    np.testing.assert_allclose(ov.z2, [0.5, 0.5, 0.0])
    assert np.sum(ov.weights) == pytest.approx(1.0)


def test_overlap_clips_range_above_the_data(edges: np.ndarray) -> None:
    ov = find_overlap(edges, 5.0, -10.0, 4)
    assert (ov.k_top, ov.k_bot) == (0, 0)
    assert ov.z1[0] == pytest.approx(-0.5)
    assert ov.z2[0] == pytest.approx(0.5)


def test_overlap_below_last_cell_is_none(edges: np.ndarray) -> None:
    assert find_overlap(edges, -45.0, -50.0, 4) is None


def test_overlap_respects_valid_cell_count(edges: np.ndarray) -> None:
    # Only the first two cells hold data.
    assert find_overlap(edges, -21.0, -29.0, 2) is None
    ov = find_overlap(edges, -15.0, -35.0, 2)
    assert (ov.k_top, ov.k_bot) == (1, 1)


def test_overlap_successive_calls_use_start_index(edges: np.ndarray) -> None:
    buffers = OverlapBuffers.allocate(4)
    first = find_overlap(edges, 0.0, -15.0, 4, buffers=buffers)
    assert first.k_bot == 1
    second = find_overlap(edges, -15.0, -40.0, 4, k_start=first.k_bot, buffers=buffers)
    assert (second.k_top, second.k_bot) == (1, 3)
    np.testing.assert_allclose(second.weights, [0.2, 0.4, 0.4])


def test_overlap_zero_thickness_range_has_unit_weight() -> None:
    e = np.array([0.0, -10.0, -10.0, -20.0])
    ov = find_overlap(e, -10.0, -10.0, 3)
    assert ov is not None
    assert np.sum(ov.weights) == pytest.approx(1.0)
    assert np.all(np.isfinite(ov.weights))


def test_limited_slope_linear_profile() -> None:
    e = np.array([0.0, -1.0, -2.0, -3.0])
    values = np.array([1.0, 2.0, 3.0])
    # Values grow downward by one per cell.
    assert find_limited_slope(values, e, 1) == pytest.approx(1.0)


def test_limited_slope_vanishes_at_extremum() -> None:
    e = np.array([0.0, -1.0, -2.0, -3.0])
    assert find_limited_slope(np.array([1.0, 3.0, 2.0]), e, 1) == 0.0
    assert find_limited_slope(np.array([2.0, 2.0, 5.0]), e, 1) == 0.0


def test_limited_slope_is_clamped() -> None:
    e = np.array([0.0, -1.0, -2.0, -3.0])
    values = np.array([0.0, 0.1, 10.0])
    slope = find_limited_slope(values, e, 1)
    assert slope == pytest.approx(2.0 * (0.1 - 0.0))
    assert slope > 0.0


def test_limited_slope_requires_interior_cell() -> None:
    e = np.array([0.0, -1.0, -2.0, -3.0])
    values = np.array([1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        find_limited_slope(values, e, 0)
    with pytest.raises(ValueError):
        find_limited_slope(values, e, 2)


def test_limited_slope_never_overshoots_neighbours() -> None:
    rng = np.random.default_rng(7)
    for _ in range(200):
        e = -np.cumsum(np.concatenate(([0.0], rng.uniform(0.1, 5.0, size=3))))
        values = rng.normal(size=3)
        slope = find_limited_slope(values, e, 1)
        lo, hi = values.min(), values.max()
        for edge_value in (values[1] - 0.5 * slope, values[1] + 0.5 * slope):
            assert lo - 1e-12 <= edge_value <= hi + 1e-12
    assert find_limited_slope(np.array([1.0, 5.0, 1.0]), np.array([0.0, -1.0, -2.0, -3.0]), 1) == 0.0


def test_overlap_weights_are_normalised_for_random_ranges() -> None:
    rng = np.random.default_rng(23)
    for _ in range(300):
        n = int(rng.integers(1, 9))
        e = -np.cumsum(np.concatenate(([0.0], rng.uniform(0.0, 5.0, size=n))))
        z_top, z_bot = np.sort(rng.uniform(e[-1] - 2.0, 2.0, size=2))[::-1]
        ov = find_overlap(e, z_top, z_bot, n)
        if z_top <= e[-1]:
            assert ov is None
            continue
        assert ov is not None
        assert np.sum(ov.weights) == pytest.approx(1.0, rel=1e-12)
        assert np.all(ov.weights >= 0.0)
        assert np.all(-0.5 - 1e-12 <= ov.z1)
        assert np.all(ov.z1 <= ov.z2 + 1e-12)
        assert np.all(ov.z2 <= 0.5 + 1e-12)
