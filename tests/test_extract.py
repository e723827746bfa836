import pytest
import numpy as np

from niche_sdm.errors import GridMismatch, OutOfBoundsPoint
from niche_sdm.extract import build_training_set, extract_environment
from niche_sdm.occurrence.cleaning import coordinates_to_geodataframe


def _points(lon, lat):
    return coordinates_to_geodataframe(np.asarray(lon, dtype=float), np.asarray(lat, dtype=float))


def test_extract_at_cell_centres(climate_grid):
    features = extract_environment(climate_grid, _points([0.5, 7.5], [9.5, 2.5]))

    assert list(features.columns) == ["bio1", "bio5", "bio12"]
    np.testing.assert_allclose(features["bio1"], [0.5, 7.5])
    np.testing.assert_allclose(features["bio12"], [95.0, 25.0])


def test_extract_selected_variables(climate_grid):
    features = extract_environment(climate_grid, _points([3.2], [4.7]), variables=["bio12", "bio1"])
    assert list(features.columns) == ["bio12", "bio1"]
    assert features.iloc[0].tolist() == [45.0, 3.5]


def test_interior_boundary_goes_to_larger_index(climate_grid):
    # x = 1.0 lies between columns 0 and 1; y = 9.0 between rows 0 and 1 (y descends)
    features = extract_environment(climate_grid, _points([1.0], [9.0]))
    assert features["bio1"].iloc[0] == 1.5
    assert features["bio12"].iloc[0] == 85.0


def test_outer_edges_are_inside(climate_grid):
    features = extract_environment(climate_grid, _points([0.0, 10.0], [10.0, 0.0]))
    np.testing.assert_allclose(features["bio1"], [0.5, 9.5])
    np.testing.assert_allclose(features["bio12"], [95.0, 5.0])


def test_out_of_bounds_points_get_no_data(climate_grid):
    points = _points([5.0, 10.01, -3.0], [5.0, 5.0, 5.0])
    with pytest.warns(OutOfBoundsPoint):
        features = extract_environment(climate_grid, points)

    assert features.iloc[0].notna().all()
    assert features.iloc[1:].isna().all().all()


def test_no_data_cell_blanks_every_band(climate_grid):
    grid = climate_grid.copy(deep=True)
    grid["bio5"][0, 0] = np.nan
    features = extract_environment(grid, _points([0.5], [9.5]))
    assert features.iloc[0].isna().all()


def test_missing_band_raises(climate_grid):
    with pytest.raises(GridMismatch):
        extract_environment(climate_grid, _points([0.5], [0.5]), variables=["bio99"])


def test_empty_points(climate_grid):
    features = extract_environment(climate_grid, _points([], []))
    assert features.empty
    assert list(features.columns) == ["bio1", "bio5", "bio12"]


def test_build_training_set_orders_and_drops(climate_grid):
    presence = _points([2.5, 50.0, 8.5], [2.5, 5.0, 8.5])
    background = _points([0.5, 1.5], [0.5, 1.5])

    with pytest.warns(OutOfBoundsPoint):
        training_set = build_training_set(
            presence, background, climate_grid, variables=["bio1", "bio12"]
        )

    assert list(training_set.columns) == ["class", "bio1", "bio12"]
    assert training_set["class"].tolist() == [1, 1, 0, 0]
    assert training_set["bio1"].tolist() == [2.5, 8.5, 0.5, 1.5]
    assert training_set.notna().all().all()
