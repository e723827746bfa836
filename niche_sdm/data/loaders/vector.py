import logging
from pathlib import Path
from typing import Union

import pandas as pd
import geopandas as gpd
import xarray as xr

from niche_sdm.geo import StudyExtent
from niche_sdm.raster.mask import rasterise_land_mask

logger = logging.getLogger(__name__)


class CsvOccurrenceProvider:
    """Reads occurrence downloads stored as one CSV per species, e.g. `Lynx_canadensis.csv`."""

    def __init__(
        self,
        folder: Union[str, Path],
        filename_template: str = "{genus}_{species}.csv",
        sep: str = ",",
    ):
        self.folder = Path(folder)
        self.filename_template = filename_template
        self.sep = sep

    def _local_path(self, genus: str, species: str) -> Path:
        return self.folder / self.filename_template.format(genus=genus, species=species)

    def fetch(self, genus: str, species: str) -> pd.DataFrame:
        path = self._local_path(genus, species)
        if not path.exists():
            raise FileNotFoundError(f"No occurrence file for {genus} {species} at {path}")
        records = pd.read_csv(path, sep=self.sep)
        logger.info(f"Loaded {len(records)} occurrence records for {genus} {species}.")
        return records


class VectorLandMaskProvider:
    """Rasterises land polygons from a vector file (GeoJSON, GPKG, shapefile...)."""

    def __init__(self, land_path: Union[str, Path]):
        self.land_path = Path(land_path)
        self._land = None

    def load_land(self) -> gpd.GeoDataFrame:
        if self._land is None:
            self._land = gpd.read_file(self.land_path)
        return self._land

    def rasterize(self, region: StudyExtent, resolution: float) -> xr.DataArray:
        land = self.load_land()
        return rasterise_land_mask(land, region, resolution)
