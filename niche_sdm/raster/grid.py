import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import xarray as xr
import rioxarray as rxr  # Required for .rio accessor, even if not directly called

from niche_sdm.errors import GridMismatch
from niche_sdm.geo import StudyExtent

logger = logging.getLogger(__name__)

CRS = "EPSG:4326"


def make_climate_grid(
    bands: Dict[str, np.ndarray],
    x: Sequence[float],
    y: Sequence[float],
    crs: str = CRS,
    resolution: Optional[float] = None,
) -> xr.Dataset:
    """
    Build a climate grid from 2D band arrays shaped (len(y), len(x)).

    Args:
        bands: Mapping of band name to array. Insertion order is the band order.
        x: Cell-centre longitudes.
        y: Cell-centre latitudes (ascending or descending).
        crs: CRS written to the grid.
        resolution: Cell size, only needed for grids one cell wide or tall.

    Returns:
        Dataset with one float data variable per band on dims (y, x).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    data_vars = {}
    for name, values in bands.items():
        values = np.asarray(values, dtype=float)
        if values.shape != (len(y), len(x)):
            raise GridMismatch(
                f"Band '{name}' has shape {values.shape}, expected {(len(y), len(x))}"
            )
        data_vars[name] = (("y", "x"), values)

    grid = xr.Dataset(data_vars, coords={"y": y, "x": x})
    if resolution is not None:
        grid.attrs["resolution"] = float(resolution)
    grid = grid.rio.write_crs(crs)
    return grid


def band_names(grid: xr.Dataset) -> List[str]:
    return [str(name) for name in grid.data_vars]


def axis_step(grid: Union[xr.Dataset, xr.DataArray], dim: str) -> float:
    """Signed distance between consecutive cell centres along `dim`."""
    coord = np.asarray(grid[dim].values, dtype=float)
    if coord.size > 1:
        steps = np.diff(coord)
        step = float(steps[0])
        if step == 0 or not np.allclose(steps, step, rtol=1e-6, atol=1e-9):
            raise GridMismatch(f"Coordinate '{dim}' is not regularly spaced.")
        return step
    resolution = grid.attrs.get("resolution")
    if resolution is None:
        raise GridMismatch(
            f"Cannot infer the cell size along '{dim}' from a single cell; "
            "set the 'resolution' attribute."
        )
    return float(resolution)


def nearest_cell_indices(
    centres: np.ndarray, step: float, values: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map coordinates onto the nearest cell along one axis.

    A value is inside the axis when it lies on or within the outer cell edges. A
    value exactly on an interior boundary goes to the cell with the larger index.

    Returns:
        Tuple of (indices, inside). Indices are only meaningful where inside is True.
    """
    values = np.asarray(values, dtype=float)
    position = (values - centres[0]) / step
    inside = np.isfinite(position) & (position >= -0.5) & (position <= len(centres) - 0.5)
    with np.errstate(invalid="ignore"):
        indices = np.floor(position + 0.5)
    indices = np.where(inside, indices, 0).astype(int)
    # The far outer edge belongs to the last cell.
    indices = np.minimum(indices, len(centres) - 1)
    return indices, inside


def crop_to_extent(
    grid: Union[xr.Dataset, xr.DataArray], extent: StudyExtent
) -> Union[xr.Dataset, xr.DataArray]:
    """Drop the rows and columns whose cell centres fall outside `extent`."""
    x = grid["x"].values
    y = grid["y"].values
    keep_x = np.flatnonzero((x >= extent.lon_min) & (x <= extent.lon_max))
    keep_y = np.flatnonzero((y >= extent.lat_min) & (y <= extent.lat_max))
    if keep_x.size == 0 or keep_y.size == 0:
        raise GridMismatch(f"Grid does not overlap the study extent {extent.bounds}.")
    return grid.isel(x=keep_x, y=keep_y)


def check_band_schema(reference: xr.Dataset, other: xr.Dataset) -> None:
    """Raise GridMismatch unless both grids have the same band names in the same order."""
    ref_names = band_names(reference)
    other_names = band_names(other)
    if ref_names != other_names:
        raise GridMismatch(
            f"Band schema mismatch: {ref_names} vs {other_names}"
        )


def check_variables_present(grid: xr.Dataset, variables: Sequence[str]) -> None:
    missing = [v for v in variables if v not in grid.data_vars]
    if missing:
        raise GridMismatch(
            f"Grid is missing bands required by the model: {missing}. "
            f"Available bands: {band_names(grid)}"
        )


def check_same_spatial_index(
    a: Union[xr.Dataset, xr.DataArray], b: Union[xr.Dataset, xr.DataArray]
) -> None:
    """Raise GridMismatch unless `a` and `b` share x and y coordinates exactly."""
    for dim in ("y", "x"):
        if dim not in a.coords or dim not in b.coords:
            raise GridMismatch(f"Both rasters need a '{dim}' coordinate.")
        if not np.array_equal(a[dim].values, b[dim].values):
            raise GridMismatch(
                f"Rasters differ along '{dim}': sizes {a[dim].size} and {b[dim].size}"
            )
