import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd
import geopandas as gpd

from niche_sdm.errors import EmptyOccurrenceSet
from niche_sdm.geo import LAT_RANGE, LON_RANGE

logger = logging.getLogger(__name__)

CRS = "EPSG:4326"


@dataclass(frozen=True)
class OccurrencePoint:
    """A single occurrence location. Longitude always comes first."""

    longitude: float
    latitude: float

    def __post_init__(self):
        if not (np.isfinite(self.longitude) and np.isfinite(self.latitude)):
            raise ValueError(
                f"Coordinates must be finite, got ({self.longitude}, {self.latitude})"
            )
        if not LON_RANGE[0] <= self.longitude <= LON_RANGE[1]:
            raise ValueError(f"Longitude {self.longitude} outside {LON_RANGE}")
        if not LAT_RANGE[0] <= self.latitude <= LAT_RANGE[1]:
            raise ValueError(f"Latitude {self.latitude} outside {LAT_RANGE}")


def points_to_geodataframe(points: Iterable[OccurrencePoint]) -> gpd.GeoDataFrame:
    """Convert validated points into an occurrence set."""
    points = list(points)
    lon = np.array([p.longitude for p in points], dtype=float)
    lat = np.array([p.latitude for p in points], dtype=float)
    return coordinates_to_geodataframe(lon, lat)


def coordinates_to_geodataframe(lon: np.ndarray, lat: np.ndarray) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"longitude": lon, "latitude": lat},
        geometry=gpd.points_from_xy(lon, lat),
        crs=CRS,
    )


def clean_occurrence_records(
    records: pd.DataFrame,
    lon_col: str = "decimalLongitude",
    lat_col: str = "decimalLatitude",
) -> gpd.GeoDataFrame:
    """
    Convert raw provider records into an occurrence set.

    Rows with null, non-finite or out-of-range coordinates are dropped. Record order
    is preserved and duplicates are kept.

    Args:
        records: Raw occurrence records.
        lon_col: Name of the longitude column.
        lat_col: Name of the latitude column.

    Returns:
        GeoDataFrame with `longitude`, `latitude` and point geometry columns.
    """
    missing = [col for col in (lon_col, lat_col) if col not in records.columns]
    if missing:
        raise KeyError(f"Occurrence records are missing columns: {missing}")

    lon = pd.to_numeric(records[lon_col], errors="coerce").to_numpy(dtype=float)
    lat = pd.to_numeric(records[lat_col], errors="coerce").to_numpy(dtype=float)

    valid = (
        np.isfinite(lon)
        & np.isfinite(lat)
        & (lon >= LON_RANGE[0])
        & (lon <= LON_RANGE[1])
        & (lat >= LAT_RANGE[0])
        & (lat <= LAT_RANGE[1])
    )
    n_dropped = int((~valid).sum())
    if n_dropped:
        logger.info(f"Dropped {n_dropped} records with missing or invalid coordinates.")

    return coordinates_to_geodataframe(lon[valid], lat[valid])


def filter_to_extent(
    points: gpd.GeoDataFrame,
    lon_min: float,
    lon_max: float,
    lat_min: float,
    lat_max: float,
) -> gpd.GeoDataFrame:
    """Keep the points inside an inclusive bounding box, preserving their order."""
    in_box = points.geometry.x.between(lon_min, lon_max) & points.geometry.y.between(
        lat_min, lat_max
    )
    filtered = points[in_box].copy()
    logger.info(
        f"Kept {len(filtered)} of {len(points)} points inside "
        f"lon [{lon_min}, {lon_max}], lat [{lat_min}, {lat_max}]."
    )
    return filtered


def require_occurrences(
    points: gpd.GeoDataFrame, species: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Raise EmptyOccurrenceSet when an occurrence set has no points."""
    if len(points) == 0:
        label = f" for {species}" if species else ""
        raise EmptyOccurrenceSet(f"No occurrence points remain{label} after filtering.")
    return points
