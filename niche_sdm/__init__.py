"""
Species distribution models for a predator and its prey, projected onto future
climate and compared with niche overlap metrics.
"""

from .errors import (
    SDMError,
    EmptyOccurrenceSet,
    EmptyBackgroundSample,
    GridMismatch,
    SingularFit,
    SDMWarning,
    NonConvergence,
    OutOfBoundsPoint,
)
from .geo import StudyExtent
from .config import PipelineConfig, load_config
from .pipeline import ComparisonResult, SpeciesRun, compare_species, project_species, run_species

__version__ = "0.1.0"
