import logging
from typing import Optional, Tuple

import numpy as np
import xarray as xr
import geopandas as gpd

from niche_sdm.geo import StudyExtent
from niche_sdm.occurrence.cleaning import coordinates_to_geodataframe

logger = logging.getLogger(__name__)


def valid_cell_centres(
    mask: xr.DataArray, extent: StudyExtent
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cell-centre coordinates of the mask cells flagged True inside `extent`.

    Cells are returned in row-major order of the mask.
    """
    mask = mask.transpose("y", "x")
    coords_x, coords_y = np.meshgrid(mask.x.data, mask.y.data)
    flat_valid = np.asarray(mask.data, dtype=bool).flatten()
    flat_x = coords_x.flatten()
    flat_y = coords_y.flatten()

    in_extent = extent.contains(flat_x, flat_y)
    keep = flat_valid & in_extent
    return flat_x[keep], flat_y[keep]


def sample_background_points(
    mask: xr.DataArray,
    extent: StudyExtent,
    n_background_points: int = 500,
    seed: Optional[int] = None,
) -> gpd.GeoDataFrame:
    """
    Draw background points uniformly from valid mask cells within the study extent.

    Points are cell centres drawn without replacement, so when the extent holds fewer
    valid cells than requested every valid cell is returned once.

    Args:
        mask: Boolean land mask on dims (y, x).
        extent: Study extent that restricts the draw.
        n_background_points: Number of points to draw.
        seed: Seed for the random generator. Fix it for reproducible output.

    Returns:
        GeoDataFrame of background points with a `presence` column of zeros.
    """
    if n_background_points < 0:
        raise ValueError(
            f"n_background_points must be non-negative, got {n_background_points}"
        )

    flat_x, flat_y = valid_cell_centres(mask, extent)
    n_available = len(flat_x)

    if n_available < n_background_points:
        logger.warning(
            f"Number of available unique locations ({n_available}) is less than "
            f"requested background points ({n_background_points}). Sampling all available points."
        )
    n_draw = min(n_available, n_background_points)

    rng = np.random.default_rng(seed)
    logger.info(f"Sampling {n_draw} background points from {n_available} valid cells...")
    chosen_indices = rng.choice(n_available, size=n_draw, replace=False)

    bg_points_gdf = coordinates_to_geodataframe(
        flat_x[chosen_indices], flat_y[chosen_indices]
    )
    bg_points_gdf["presence"] = 0
    return bg_points_gdf
