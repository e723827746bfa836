import pytest
import numpy as np
import pandas as pd
import xarray as xr
import geopandas as gpd
import rioxarray as rxr
from shapely.geometry import box

from niche_sdm.data import (
    CsvOccurrenceProvider,
    GeoTiffClimateProvider,
    VectorLandMaskProvider,
    load_climate_grid,
)
from niche_sdm.data.loaders.climate import tidy_band_name
from niche_sdm.errors import GridMismatch
from niche_sdm.geo import StudyExtent


def write_climate_tif(path, long_names=("wc2.1_10m_bio_01", "wc2.1_10m_bio_12"), offset=0.0):
    x = np.arange(0.5, 4.0, 1.0)
    y = np.arange(2.5, 0.0, -1.0)
    values = np.stack(
        [np.tile(x, (len(y), 1)) + offset + 10 * i for i in range(len(long_names))]
    )
    values[0, 0, 0] = -9999.0
    data = xr.DataArray(
        values,
        coords={"band": np.arange(1, len(long_names) + 1), "y": y, "x": x},
        dims=("band", "y", "x"),
    )
    data.attrs["long_name"] = tuple(long_names)
    data = data.rio.write_crs("EPSG:4326").rio.write_nodata(-9999.0)
    data.rio.to_raster(path)
    return path


@pytest.mark.parametrize(
    "long_name, expected",
    [
        ("wc2.1_10m_bio_01", "bio1"),
        ("wc2.1_2.5m_bio_15", "bio15"),
        ("bio_5", "bio5"),
        ("elevation", "elevation"),
    ],
)
def test_tidy_band_name(long_name, expected):
    assert tidy_band_name(long_name) == expected


def test_load_climate_grid(tmp_path):
    path = write_climate_tif(tmp_path / "climate.tif")
    grid = load_climate_grid(path)

    assert list(grid.data_vars) == ["bio1", "bio12"]
    assert grid["bio1"].dims == ("y", "x")
    assert np.isnan(grid["bio1"].values[0, 0])
    assert grid["bio12"].values[0, 0] == pytest.approx(10.5)
    assert grid.attrs["resolution"] == pytest.approx(1.0)
    assert grid.rio.crs is not None


def test_load_climate_grid_with_names_and_region(tmp_path):
    path = write_climate_tif(tmp_path / "climate.tif")
    region = StudyExtent(lon_min=1.6, lon_max=2.4, lat_min=0.0, lat_max=3.0)
    grid = load_climate_grid(path, band_names=["t", "p"], region=region)

    assert list(grid.data_vars) == ["t", "p"]
    assert grid.sizes["x"] < 4


def test_load_climate_grid_band_name_count(tmp_path):
    path = write_climate_tif(tmp_path / "climate.tif")
    with pytest.raises(ValueError):
        load_climate_grid(path, band_names=["only_one"])


def test_geotiff_provider(tmp_path):
    write_climate_tif(tmp_path / "wc2.1_10m_bio.tif")
    write_climate_tif(tmp_path / "wc2.1_10m_bioc_ACCESS-CM2_ssp585_2061-2080.tif", offset=2.0)
    provider = GeoTiffClimateProvider(tmp_path)

    current, future = provider.fetch_pair(
        "bio",
        "10m",
        model_name="ACCESS-CM2",
        emissions_scenario="ssp585",
        time_window="2061-2080",
    )
    assert list(current.data_vars) == list(future.data_vars)
    assert float(future["bio1"][0, 1] - current["bio1"][0, 1]) == pytest.approx(2.0)

    with pytest.raises(FileNotFoundError):
        provider.fetch_grid("tmin", "10m")


def test_geotiff_provider_schema_mismatch(tmp_path):
    write_climate_tif(tmp_path / "wc2.1_10m_bio.tif")
    write_climate_tif(
        tmp_path / "wc2.1_10m_bioc_M_s_t.tif", long_names=("wc2.1_10m_bio_12", "wc2.1_10m_bio_01")
    )
    provider = GeoTiffClimateProvider(tmp_path)
    with pytest.raises(GridMismatch):
        provider.fetch_pair("bio", "10m", model_name="M", emissions_scenario="s", time_window="t")


def test_csv_occurrence_provider(tmp_path):
    records = pd.DataFrame(
        {"decimalLongitude": [1.0, 2.0], "decimalLatitude": [3.0, 4.0], "year": [2001, 2002]}
    )
    records.to_csv(tmp_path / "Lynx_canadensis.csv", index=False)
    provider = CsvOccurrenceProvider(tmp_path)

    fetched = provider.fetch("Lynx", "canadensis")
    pd.testing.assert_frame_equal(fetched, records)
    with pytest.raises(FileNotFoundError):
        provider.fetch("Lepus", "americanus")


def test_vector_land_mask_provider(tmp_path):
    land = gpd.GeoDataFrame({"geometry": [box(0, 0, 2, 2)]}, crs="EPSG:4326")
    land.to_file(tmp_path / "land.geojson", driver="GeoJSON")
    provider = VectorLandMaskProvider(tmp_path / "land.geojson")

    mask = provider.rasterize(StudyExtent(0.0, 4.0, 0.0, 4.0), resolution=1.0)
    assert mask.shape == (4, 4)
    assert int(mask.sum()) == 4
