"""
Raster utilities for SDM.
"""

from .grid import (
    make_climate_grid,
    band_names,
    crop_to_extent,
    check_band_schema,
    check_same_spatial_index,
)
from .mask import rasterise_land_mask, land_mask_from_grid

__all__ = [
    "make_climate_grid",
    "band_names",
    "crop_to_extent",
    "check_band_schema",
    "check_same_spatial_index",
    "rasterise_land_mask",
    "land_mask_from_grid",
]
