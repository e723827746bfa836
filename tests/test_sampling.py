import pytest
import numpy as np
import xarray as xr
import geopandas as gpd
from shapely.geometry import box

from niche_sdm.geo import StudyExtent
from niche_sdm.occurrence import sample_background_points
from niche_sdm.raster import land_mask_from_grid, rasterise_land_mask


def _mask_value(mask: xr.DataArray, lon: float, lat: float) -> bool:
    return bool(mask.sel(x=lon, y=lat).item())


def test_sampling_is_reproducible(land_mask, full_extent):
    first = sample_background_points(land_mask, full_extent, n_background_points=20, seed=3)
    second = sample_background_points(land_mask, full_extent, n_background_points=20, seed=3)

    assert len(first) == 20
    np.testing.assert_array_equal(first.longitude.values, second.longitude.values)
    np.testing.assert_array_equal(first.latitude.values, second.latitude.values)
    assert (first["presence"] == 0).all()


def test_sampled_points_on_valid_cells_inside_extent(land_mask):
    extent = StudyExtent(lon_min=2.0, lon_max=6.0, lat_min=0.0, lat_max=4.0)
    points = sample_background_points(land_mask, extent, n_background_points=10, seed=0)

    assert len(points) == 10
    assert extent.contains(points.longitude, points.latitude).all()
    for lon, lat in zip(points.longitude, points.latitude):
        assert _mask_value(land_mask, lon, lat)


def test_sampling_without_replacement_caps_at_available_cells(land_mask):
    # Centres 0.5..2.5 on both axes inside the box; the bottom row is water
    extent = StudyExtent(lon_min=0.0, lon_max=3.0, lat_min=0.0, lat_max=3.0)
    points = sample_background_points(land_mask, extent, n_background_points=500, seed=0)

    assert len(points) == 6
    coords = set(zip(points.longitude, points.latitude))
    assert len(coords) == 6


def test_sampling_with_no_valid_cells(land_mask):
    extent = StudyExtent(lon_min=0.0, lon_max=10.0, lat_min=0.0, lat_max=0.9)
    points = sample_background_points(land_mask, extent, n_background_points=10, seed=0)
    assert len(points) == 0


def test_negative_count_rejected(land_mask, full_extent):
    with pytest.raises(ValueError):
        sample_background_points(land_mask, full_extent, n_background_points=-1)


def test_rasterise_land_mask():
    land = gpd.GeoDataFrame({"geometry": [box(0, 0, 5, 10)]}, crs="EPSG:4326")
    extent = StudyExtent(lon_min=0.0, lon_max=10.0, lat_min=0.0, lat_max=10.0)
    mask = rasterise_land_mask(land, extent, resolution=1.0)

    assert mask.dims == ("y", "x")
    assert mask.shape == (10, 10)
    assert int(mask.sum()) == 50
    assert _mask_value(mask, 4.5, 0.5)
    assert not _mask_value(mask, 5.5, 9.5)
    # North-up cell centres
    assert mask.y.values[0] == 9.5
    assert mask.attrs["resolution"] == 1.0


def test_land_mask_from_grid(climate_grid):
    grid = climate_grid.copy(deep=True)
    grid["bio12"][0, 0] = np.nan
    mask = land_mask_from_grid(grid)

    assert mask.shape == (10, 10)
    assert int(mask.sum()) == 99
    assert not bool(mask[0, 0])
