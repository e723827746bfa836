"""Model prediction functionality for SDM models."""

import logging
from typing import Optional, Sequence

import numpy as np
import xarray as xr
import rioxarray as rxr  # Required for .rio accessor, even if not directly called
from tqdm import tqdm

from niche_sdm.geo import StudyExtent
from niche_sdm.models.core.training import LogisticModel, predict_probability_array
from niche_sdm.raster.grid import check_variables_present, crop_to_extent

logger = logging.getLogger(__name__)


def predict_grid(
    coefficients: Sequence[float],
    variables: Sequence[str],
    climate_grid: xr.Dataset,
    extent: Optional[StudyExtent] = None,
    window_size: int = 256,
    quiet: bool = True,
) -> xr.DataArray:
    """Apply logistic coefficients to every cell of a climate grid.

    The grid is first cropped to the cells whose centres lie inside `extent`. Cells
    where any of `variables` has no data get NaN. The result depends only on the
    coefficients and the cell values, so the same model can be applied to any grid
    with the same bands.

    Args:
        coefficients: Intercept followed by one coefficient per variable.
        variables: Band names, in coefficient order.
        climate_grid: Grid to predict on.
        extent: Study extent to crop to. No cropping when None.
        window_size: Number of rows processed per window.
        quiet: Silence the progress bar.

    Returns:
        Probability surface on dims (y, x).
    """
    coefficients = np.asarray(coefficients, dtype=float)
    variables = list(variables)
    if len(coefficients) != len(variables) + 1:
        raise ValueError(
            f"Expected {len(variables) + 1} coefficients for {variables}, got {len(coefficients)}"
        )
    check_variables_present(climate_grid, variables)

    grid = climate_grid[variables]
    if extent is not None:
        grid = crop_to_extent(grid, extent)

    covariates = np.stack(
        [np.asarray(grid[v].transpose("y", "x").values, dtype=float) for v in variables]
    )
    _, height, width = covariates.shape
    predictions = np.full((height, width), np.nan)

    windows = range(0, height, max(1, window_size))
    for row_off in tqdm(windows, desc="Window", disable=quiet):
        rows = slice(row_off, min(row_off + window_size, height))
        block = covariates[:, rows, :].reshape(len(variables), -1).T
        predictions[rows, :] = predict_probability_array(coefficients, block).reshape(
            -1, width
        )

    surface = xr.DataArray(
        predictions,
        coords={"y": grid["y"].values, "x": grid["x"].values},
        dims=("y", "x"),
        name="probability",
    )
    surface.attrs.update(
        {k: v for k, v in climate_grid.attrs.items() if k == "resolution"}
    )
    if climate_grid.rio.crs is not None:
        surface = surface.rio.write_crs(climate_grid.rio.crs)
    surface.rio.write_nodata(np.nan, inplace=True)

    n_valid = int(np.isfinite(predictions).sum())
    logger.info(f"Predicted {n_valid} of {predictions.size} cells ({len(variables)} variables).")
    return surface


def predict_model_grid(
    model: LogisticModel,
    climate_grid: xr.Dataset,
    extent: Optional[StudyExtent] = None,
    **kwargs,
) -> xr.DataArray:
    """Shorthand for `predict_grid` with a fitted LogisticModel."""
    return predict_grid(model.coefficients, model.variables, climate_grid, extent, **kwargs)
