from .climate import GeoTiffClimateProvider, load_climate_grid, tidy_band_name
from .vector import CsvOccurrenceProvider, VectorLandMaskProvider

__all__ = [
    'GeoTiffClimateProvider',
    'load_climate_grid',
    'tidy_band_name',
    'CsvOccurrenceProvider',
    'VectorLandMaskProvider',
]
