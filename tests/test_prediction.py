import pytest
import numpy as np

from niche_sdm.errors import GridMismatch
from niche_sdm.geo import StudyExtent
from niche_sdm.models.core.prediction import predict_grid
from niche_sdm.models.core.training import predict_probability


COEFFICIENTS = [-2.0, 0.5, -0.01]
VARIABLES = ["bio1", "bio12"]


def test_predict_grid_matches_cell_predictions(climate_grid):
    surface = predict_grid(COEFFICIENTS, VARIABLES, climate_grid)

    assert surface.dims == ("y", "x")
    assert surface.shape == (10, 10)
    assert surface.rio.crs is not None
    cell = climate_grid.isel(y=3, x=6)
    expected = predict_probability(COEFFICIENTS, [float(cell["bio1"]), float(cell["bio12"])])
    assert float(surface.isel(y=3, x=6)) == pytest.approx(expected)
    assert ((surface >= 0) & (surface <= 1)).all()


def test_predict_grid_is_deterministic(climate_grid):
    first = predict_grid(COEFFICIENTS, VARIABLES, climate_grid, window_size=3)
    second = predict_grid(COEFFICIENTS, VARIABLES, climate_grid, window_size=3)
    np.testing.assert_array_equal(first.values, second.values)


def test_window_size_does_not_change_result(climate_grid):
    small = predict_grid(COEFFICIENTS, VARIABLES, climate_grid, window_size=1)
    large = predict_grid(COEFFICIENTS, VARIABLES, climate_grid, window_size=256)
    np.testing.assert_array_equal(small.values, large.values)


def test_predict_grid_crops_to_extent(climate_grid):
    extent = StudyExtent(lon_min=2.0, lon_max=5.0, lat_min=6.0, lat_max=9.0)
    surface = predict_grid(COEFFICIENTS, VARIABLES, climate_grid, extent=extent)

    np.testing.assert_array_equal(surface.x.values, [2.5, 3.5, 4.5])
    np.testing.assert_array_equal(surface.y.values, [8.5, 7.5, 6.5])


def test_no_data_cells_stay_no_data(climate_grid):
    grid = climate_grid.copy(deep=True)
    grid["bio12"][2, 2] = np.nan
    surface = predict_grid(COEFFICIENTS, VARIABLES, grid)

    assert np.isnan(surface.values[2, 2])
    assert np.isfinite(surface.values).sum() == 99


def test_missing_band_is_grid_mismatch(climate_grid):
    with pytest.raises(GridMismatch):
        predict_grid([0.0, 1.0], ["bio7"], climate_grid)


def test_extent_outside_grid(climate_grid):
    extent = StudyExtent(lon_min=50.0, lon_max=60.0, lat_min=0.0, lat_max=10.0)
    with pytest.raises(GridMismatch):
        predict_grid(COEFFICIENTS, VARIABLES, climate_grid, extent=extent)


def test_coefficient_count_checked(climate_grid):
    with pytest.raises(ValueError):
        predict_grid([0.0, 1.0], VARIABLES, climate_grid)
