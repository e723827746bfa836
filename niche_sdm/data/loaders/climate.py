"""
Climate data loading functionality.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Union

import xarray as xr
import rioxarray as rxr

from niche_sdm.geo import StudyExtent
from niche_sdm.raster.grid import check_band_schema

logger = logging.getLogger(__name__)


def tidy_band_name(long_name: str) -> str:
    """Strip WorldClim file prefixes and zero padding, e.g. 'wc2.1_10m_bio_01' -> 'bio1'."""
    name = long_name.strip().lower().replace(" ", "_")
    name = re.sub(r"^wc2\.1_[^_]+_", "", name)
    name = re.sub(r"^(bio)c?_?0*(\d+)$", r"\1\2", name)
    return name


def _band_names(data: xr.DataArray, band_names: Optional[Sequence[str]]) -> List[str]:
    n_bands = data.sizes["band"]
    if band_names is not None:
        names = list(band_names)
    else:
        long_name = data.attrs.get("long_name")
        if long_name is None:
            names = [f"band_{i + 1}" for i in range(n_bands)]
        elif isinstance(long_name, str):
            names = [long_name]
        else:
            names = list(long_name)
        names = [tidy_band_name(name) for name in names]
    if len(names) != n_bands:
        raise ValueError(f"Got {len(names)} band names for {n_bands} bands")
    if len(set(names)) != len(names):
        raise ValueError(f"Band names are not unique: {names}")
    return names


def load_climate_grid(
    path: Union[str, Path],
    band_names: Optional[Sequence[str]] = None,
    region: Optional[StudyExtent] = None,
) -> xr.Dataset:
    """
    Load a multi-band raster into a climate grid.

    Args:
        path: Path to a GeoTIFF (or any raster rasterio can read).
        band_names: Names for the bands. Defaults to the raster's tidied `long_name`s.
        region: Optional extent to clip the raster to.

    Returns:
        Dataset with one data variable per band on dims (y, x); nodata becomes NaN.
    """
    data = rxr.open_rasterio(path, masked=True)
    if not isinstance(data, xr.DataArray):
        raise ValueError(f"Expected DataArray from {path}, got {type(data)}")

    names = _band_names(data, band_names)
    if region is not None:
        data = data.rio.clip_box(*region.bounds)

    data = data.astype(float)
    # Rename the band dimension and convert to a dataset
    data.coords["band"] = names
    grid = data.to_dataset(dim="band")
    grid.attrs = {"resolution": float(abs(data.rio.resolution()[0]))}
    grid = grid.rio.write_crs(data.rio.crs)
    logger.info(f"Loaded climate grid {path} with bands {names} and shape {dict(data.sizes)}")
    return grid


class GeoTiffClimateProvider:
    """
    Serves current and future climate grids from GeoTIFF files in a local folder.

    Files follow the WorldClim naming scheme by default, e.g.
    `wc2.1_10m_bio.tif` and `wc2.1_10m_bioc_ACCESS-CM2_ssp585_2061-2080.tif`.
    """

    def __init__(
        self,
        folder: Union[str, Path],
        current_template: str = "wc2.1_{resolution}_{variable_family}.tif",
        future_template: str = (
            "wc2.1_{resolution}_{variable_family}c_{model_name}_{emissions_scenario}_{time_window}.tif"
        ),
    ):
        self.folder = Path(folder)
        self.current_template = current_template
        self.future_template = future_template

    def _local_path(self, filename: str) -> Path:
        path = self.folder / filename
        if not path.exists():
            raise FileNotFoundError(f"Climate raster not found: {path}")
        return path

    def fetch_grid(
        self,
        variable_family: str,
        resolution: str,
        region: Optional[StudyExtent] = None,
    ) -> xr.Dataset:
        path = self._local_path(
            self.current_template.format(variable_family=variable_family, resolution=resolution)
        )
        return load_climate_grid(path, region=region)

    def fetch_future_grid(
        self,
        model_name: str,
        variable_family: str,
        emissions_scenario: str,
        resolution: str,
        time_window: str,
        region: Optional[StudyExtent] = None,
    ) -> xr.Dataset:
        path = self._local_path(
            self.future_template.format(
                model_name=model_name,
                variable_family=variable_family,
                emissions_scenario=emissions_scenario,
                resolution=resolution,
                time_window=time_window,
            )
        )
        return load_climate_grid(path, region=region)

    def fetch_pair(self, variable_family: str, resolution: str, region=None, **future):
        """Current and future grids, checked to share a band schema."""
        current = self.fetch_grid(variable_family, resolution, region=region)
        projected = self.fetch_future_grid(
            variable_family=variable_family, resolution=resolution, region=region, **future
        )
        check_band_schema(current, projected)
        return current, projected
