"""Interfaces of the collaborators that supply raw data to the pipeline."""

from typing import Optional, Protocol

import pandas as pd
import xarray as xr

from niche_sdm.geo import StudyExtent


class OccurrenceProvider(Protocol):
    def fetch(self, genus: str, species: str) -> pd.DataFrame:
        """Raw occurrence records; coordinates may be missing."""
        ...


class ClimateProvider(Protocol):
    def fetch_grid(
        self,
        variable_family: str,
        resolution: str,
        region: Optional[StudyExtent] = None,
    ) -> xr.Dataset:
        ...

    def fetch_future_grid(
        self,
        model_name: str,
        variable_family: str,
        emissions_scenario: str,
        resolution: str,
        time_window: str,
        region: Optional[StudyExtent] = None,
    ) -> xr.Dataset:
        """A future grid with the same band names and order as `fetch_grid`."""
        ...


class LandMaskProvider(Protocol):
    def rasterize(self, region: StudyExtent, resolution: float) -> xr.DataArray:
        ...
