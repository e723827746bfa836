"""
Occurrence data processing functionality for SDM.
"""

from .cleaning import (
    OccurrencePoint,
    clean_occurrence_records,
    filter_to_extent,
    points_to_geodataframe,
    require_occurrences,
)
from .sampling import sample_background_points

__all__ = [
    'OccurrencePoint',
    'clean_occurrence_records',
    'filter_to_extent',
    'points_to_geodataframe',
    'require_occurrences',
    'sample_background_points',
]
