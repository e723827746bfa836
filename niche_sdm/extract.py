"""Sampling of climate grids at point locations."""

import logging
import warnings
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import geopandas as gpd
import xarray as xr

from niche_sdm.errors import OutOfBoundsPoint
from niche_sdm.raster.grid import (
    axis_step,
    band_names,
    check_variables_present,
    nearest_cell_indices,
)

logger = logging.getLogger(__name__)

RESPONSE_COLUMN = "class"


def extract_environment(
    grid: xr.Dataset,
    points: gpd.GeoDataFrame,
    variables: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Extract band values at point locations using the nearest cell.

    Points outside the grid, and points on a cell where any requested band has no
    data, get NaN for every band.

    Args:
        grid: Climate grid with dims (y, x).
        points: Points in the grid's coordinate system.
        variables: Bands to extract. Defaults to every band, in grid order.

    Returns:
        DataFrame with one row per point (same index as `points`) and one column per band.
    """
    variables: List[str] = list(variables) if variables is not None else band_names(grid)
    check_variables_present(grid, variables)

    columns = {}
    if len(points) == 0:
        return pd.DataFrame({v: pd.Series(dtype=float) for v in variables}, index=points.index)

    x_idx, inside_x = nearest_cell_indices(
        grid["x"].values, axis_step(grid, "x"), points.geometry.x.values
    )
    y_idx, inside_y = nearest_cell_indices(
        grid["y"].values, axis_step(grid, "y"), points.geometry.y.values
    )
    inside = inside_x & inside_y

    n_outside = int((~inside).sum())
    if n_outside:
        logger.warning(f"{n_outside} of {len(points)} points fall outside the grid.")
        warnings.warn(
            f"{n_outside} points fall outside the grid extent and were given no data.",
            OutOfBoundsPoint,
            stacklevel=2,
        )

    for name in variables:
        band = np.asarray(grid[name].transpose("y", "x").values, dtype=float)
        values = band[y_idx, x_idx]
        values[~inside] = np.nan
        columns[name] = values

    features = pd.DataFrame(columns, index=points.index)
    # A no-data cell yields missing values for all bands
    features.loc[features.isna().any(axis=1), :] = np.nan
    return features


def build_training_set(
    presence_points: gpd.GeoDataFrame,
    background_points: gpd.GeoDataFrame,
    grid: xr.Dataset,
    variables: Optional[Sequence[str]] = None,
    response_column: str = RESPONSE_COLUMN,
) -> pd.DataFrame:
    """
    Stack presence and background points into a training table.

    Presence rows (label 1) come first, then background rows (label 0). Rows with
    any missing feature are dropped and the relative order within each group is kept.

    Returns:
        DataFrame with the response column followed by one column per variable.
    """
    presence = extract_environment(grid, presence_points, variables)
    background = extract_environment(grid, background_points, variables)

    presence.insert(0, response_column, 1)
    background.insert(0, response_column, 0)

    original_pres_len = len(presence)
    original_bg_len = len(background)
    presence = presence.dropna()
    background = background.dropna()
    logger.info(f"Removed {original_pres_len - len(presence)} NA rows from presences.")
    logger.info(f"Removed {original_bg_len - len(background)} NA rows from background.")

    training_set = pd.concat([presence, background], ignore_index=True)
    training_set[response_column] = training_set[response_column].astype(int)
    logger.info(
        f"Prepared training set: {len(presence)} presence and {len(background)} background rows."
    )
    return training_set
