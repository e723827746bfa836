import pytest
import numpy as np
import geopandas as gpd
import xarray as xr

from niche_sdm.config import PipelineConfig
from niche_sdm.geo import StudyExtent
from niche_sdm.occurrence.cleaning import coordinates_to_geodataframe
from niche_sdm.raster.grid import make_climate_grid


@pytest.fixture
def grid_coords():
    """10 x 10 one-degree cells covering lon [0, 10] and lat [0, 10], north up."""
    x = np.arange(0.5, 10.0, 1.0)
    y = np.arange(9.5, 0.0, -1.0)
    return x, y


@pytest.fixture
def climate_grid(grid_coords) -> xr.Dataset:
    """bio1 is the cell longitude, bio12 is ten times the cell latitude, bio5 is noise."""
    x, y = grid_coords
    xx, yy = np.meshgrid(x, y)
    rng = np.random.default_rng(0)
    return make_climate_grid(
        {
            "bio1": xx,
            "bio5": rng.normal(size=xx.shape),
            "bio12": yy * 10,
        },
        x,
        y,
    )


@pytest.fixture
def future_grid(climate_grid: xr.Dataset) -> xr.Dataset:
    future = climate_grid.copy(deep=True)
    future["bio1"] = future["bio1"] + 1.0
    return future


@pytest.fixture
def full_extent() -> StudyExtent:
    return StudyExtent(lon_min=0.0, lon_max=10.0, lat_min=0.0, lat_max=10.0)


@pytest.fixture
def land_mask(grid_coords) -> xr.DataArray:
    """Every cell is land except the bottom row."""
    x, y = grid_coords
    mask = np.ones((len(y), len(x)), dtype=bool)
    mask[-1, :] = False
    return xr.DataArray(mask, coords={"y": y, "x": x}, dims=("y", "x"), name="land")


@pytest.fixture
def east_occurrences() -> gpd.GeoDataFrame:
    """Points biased towards the east of the grid, overlapping the western cells."""
    rng = np.random.default_rng(1)
    lon = rng.uniform(3.0, 9.9, size=40)
    lat = rng.uniform(1.1, 9.9, size=40)
    return coordinates_to_geodataframe(lon, lat)


@pytest.fixture
def west_occurrences() -> gpd.GeoDataFrame:
    rng = np.random.default_rng(2)
    lon = rng.uniform(0.1, 7.0, size=40)
    lat = rng.uniform(1.1, 9.9, size=40)
    return coordinates_to_geodataframe(lon, lat)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        buffer_degrees=1.0,
        n_background_points=60,
        seed=7,
        candidate_variables=["bio1", "bio5", "bio12"],
    )
