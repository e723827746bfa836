import logging

import numpy as np
import xarray as xr
import geopandas as gpd
import rioxarray as rxr  # Required for .rio accessor, even if not directly called
from rasterio.features import geometry_mask
from rasterio.transform import from_origin

from niche_sdm.geo import StudyExtent
from niche_sdm.raster.grid import CRS

logger = logging.getLogger(__name__)


def rasterise_land_mask(
    land: gpd.GeoDataFrame, extent: StudyExtent, resolution: float
) -> xr.DataArray:
    """
    Rasterise land polygons into a boolean mask covering the study extent.

    The grid starts at the extent's north-west corner and is padded on the east and
    south so that it covers the whole extent.

    Args:
        land: Land polygons. Reprojected to EPSG:4326 if needed.
        extent: Area to cover.
        resolution: Cell size in degrees.

    Returns:
        Boolean DataArray on dims (y, x), True where a cell centre is on land.
    """
    if resolution <= 0:
        raise ValueError(f"Resolution must be positive, got {resolution}")
    if land.crs is not None and land.crs != CRS:
        land = land.to_crs(CRS)

    width = int(np.ceil((extent.lon_max - extent.lon_min) / resolution - 1e-9))
    height = int(np.ceil((extent.lat_max - extent.lat_min) / resolution - 1e-9))
    transform = from_origin(extent.lon_min, extent.lat_max, resolution, resolution)

    # This gives a value of True where the geometry covers a cell centre
    mask = geometry_mask(
        land.geometry, transform=transform, invert=True, out_shape=(height, width)
    )

    x = extent.lon_min + (np.arange(width) + 0.5) * resolution
    y = extent.lat_max - (np.arange(height) + 0.5) * resolution
    land_mask = xr.DataArray(mask, coords={"y": y, "x": x}, dims=("y", "x"), name="land")
    land_mask.attrs["resolution"] = float(resolution)
    land_mask = land_mask.rio.write_crs(CRS)

    logger.info(f"Rasterised land mask: {int(mask.sum())} of {mask.size} cells on land.")
    return land_mask


def land_mask_from_grid(grid: xr.Dataset) -> xr.DataArray:
    """Flag the cells where every climate band has data."""
    valid = None
    for name in grid.data_vars:
        band_valid = grid[name].notnull()
        valid = band_valid if valid is None else valid & band_valid
    if valid is None:
        raise ValueError("Climate grid has no bands.")
    valid = valid.transpose("y", "x")
    valid.name = "land"
    valid.attrs = {k: v for k, v in grid.attrs.items() if k == "resolution"}
    logger.info(f"Land mask from grid: {int(valid.sum())} of {valid.size} cells valid.")
    return valid
