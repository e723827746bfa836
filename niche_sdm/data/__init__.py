"""
Data providers for occurrence records, climate grids and land masks.
"""

from .providers import OccurrenceProvider, ClimateProvider, LandMaskProvider
from .loaders import (
    CsvOccurrenceProvider,
    GeoTiffClimateProvider,
    VectorLandMaskProvider,
    load_climate_grid,
)

__all__ = [
    'OccurrenceProvider',
    'ClimateProvider',
    'LandMaskProvider',
    'CsvOccurrenceProvider',
    'GeoTiffClimateProvider',
    'VectorLandMaskProvider',
    'load_climate_grid',
]
