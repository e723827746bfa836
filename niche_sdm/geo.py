import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import geopandas as gpd
from shapely.geometry import box

from niche_sdm.errors import EmptyOccurrenceSet

logger = logging.getLogger(__name__)

LON_RANGE = (-180.0, 180.0)
LAT_RANGE = (-90.0, 90.0)


@dataclass(frozen=True)
class StudyExtent:
    """Axis-aligned bounding box in geographic coordinates."""

    lon_min: float
    lon_max: float
    lat_min: float
    lat_max: float

    def __post_init__(self):
        values = (self.lon_min, self.lon_max, self.lat_min, self.lat_max)
        if not all(np.isfinite(v) for v in values):
            raise ValueError(f"Extent bounds must be finite, got {values}")
        if not self.lon_min < self.lon_max:
            raise ValueError(
                f"lon_min ({self.lon_min}) must be less than lon_max ({self.lon_max})"
            )
        if not self.lat_min < self.lat_max:
            raise ValueError(
                f"lat_min ({self.lat_min}) must be less than lat_max ({self.lat_max})"
            )

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Bounds in (minx, miny, maxx, maxy) order, as used by shapely and rasterio."""
        return (self.lon_min, self.lat_min, self.lon_max, self.lat_max)

    def to_polygon(self):
        return box(*self.bounds)

    def contains(self, lon, lat) -> np.ndarray:
        lon = np.asarray(lon, dtype=float)
        lat = np.asarray(lat, dtype=float)
        return (
            (lon >= self.lon_min)
            & (lon <= self.lon_max)
            & (lat >= self.lat_min)
            & (lat <= self.lat_max)
        )

    @classmethod
    def from_occurrences(
        cls, *occurrence_sets: gpd.GeoDataFrame, buffer: float = 5.0
    ) -> "StudyExtent":
        """
        Build the study extent from the total bounds of one or more occurrence sets.

        The box is grown by `buffer` degrees on every side and clamped to the valid
        longitude and latitude ranges.

        Args:
            occurrence_sets: GeoDataFrames of occurrence points in EPSG:4326.
            buffer: Margin in degrees added around the points.

        Returns:
            The buffered StudyExtent.
        """
        if buffer < 0:
            raise ValueError(f"Buffer must be non-negative, got {buffer}")
        non_empty = [gdf for gdf in occurrence_sets if len(gdf) > 0]
        if not non_empty:
            raise EmptyOccurrenceSet(
                "Cannot derive a study extent without any occurrence points."
            )

        bounds = np.array([gdf.total_bounds for gdf in non_empty])
        minx, miny = bounds[:, 0].min(), bounds[:, 1].min()
        maxx, maxy = bounds[:, 2].max(), bounds[:, 3].max()

        extent = cls(
            lon_min=max(LON_RANGE[0], float(minx) - buffer),
            lon_max=min(LON_RANGE[1], float(maxx) + buffer),
            lat_min=max(LAT_RANGE[0], float(miny) - buffer),
            lat_max=min(LAT_RANGE[1], float(maxy) + buffer),
        )
        logger.info(f"Study extent with {buffer} degree buffer: {extent.bounds}")
        return extent
