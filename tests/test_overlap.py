import pytest
import numpy as np
import xarray as xr

from niche_sdm.errors import GridMismatch
from niche_sdm.overlap import combine, niche_overlap, schoeners_d, warrens_i


def _surface(values, x=None) -> xr.DataArray:
    values = np.atleast_2d(np.asarray(values, dtype=float))
    x = np.arange(values.shape[1]) + 0.5 if x is None else np.asarray(x, dtype=float)
    y = np.arange(values.shape[0])[::-1] + 0.5
    return xr.DataArray(values, coords={"y": y, "x": x}, dims=("y", "x"), name="probability")


def test_identical_normalised_surfaces():
    a = _surface([0.2, 0.5, 0.3])
    b = _surface([0.2, 0.5, 0.3])
    assert schoeners_d(a, b) == 1.0
    assert warrens_i(a, b) == pytest.approx(1.0)


def test_scale_does_not_matter():
    a = _surface([[0.1, 0.4], [0.2, 0.3]])
    b = a * 7
    score = niche_overlap(a, b)
    assert score.schoeners_d == pytest.approx(1.0)
    assert score.warrens_i == pytest.approx(1.0)


def test_disjoint_support():
    a = _surface([0.6, 0.4, 0.0, 0.0])
    b = _surface([0.0, 0.0, 0.3, 0.9])
    assert schoeners_d(a, b) == pytest.approx(0.0)
    assert warrens_i(a, b) == pytest.approx(0.0)


def test_symmetric_and_bounded():
    rng = np.random.default_rng(8)
    a = _surface(rng.uniform(size=(5, 6)))
    b = _surface(rng.uniform(size=(5, 6)))

    d_ab, d_ba = schoeners_d(a, b), schoeners_d(b, a)
    i_ab, i_ba = warrens_i(a, b), warrens_i(b, a)
    assert d_ab == pytest.approx(d_ba)
    assert i_ab == pytest.approx(i_ba)
    assert 0 <= d_ab <= 1
    assert 0 <= i_ab <= 1


def test_known_values():
    a = _surface([0.5, 0.5, 0.0])
    b = _surface([0.0, 0.5, 0.5])
    assert schoeners_d(a, b) == pytest.approx(0.5)
    assert warrens_i(a, b) == pytest.approx(0.5)


def test_missing_cells_are_excluded():
    a = _surface([0.5, 0.5, np.nan])
    b = _surface([0.5, 0.5, 0.9])
    assert schoeners_d(a, b) == pytest.approx(1.0)


def test_zero_total_is_an_error():
    a = _surface([0.0, 0.0])
    b = _surface([0.5, 0.5])
    with pytest.raises(ValueError):
        schoeners_d(a, b)


def test_grid_mismatch():
    a = _surface([0.2, 0.5, 0.3])
    b = _surface([0.2, 0.5, 0.3], x=[1.5, 2.5, 3.5])
    with pytest.raises(GridMismatch):
        niche_overlap(a, b)
    with pytest.raises(GridMismatch):
        combine(a, b)


def test_combine_is_cellwise_product():
    a = _surface([[0.5, 0.2], [1.0, np.nan]])
    b = _surface([[0.5, 0.5], [0.3, 0.4]])
    combined = combine(a, b)

    np.testing.assert_allclose(combined.values[0], [0.25, 0.1])
    assert combined.values[1, 0] == pytest.approx(0.3)
    assert np.isnan(combined.values[1, 1])
