"""Exceptions and warning categories raised by the modelling pipeline."""


class SDMError(Exception):
    """Base class for fatal pipeline errors."""


class EmptyOccurrenceSet(SDMError):
    """Raised when no occurrence points remain after cleaning and filtering."""


class EmptyBackgroundSample(SDMError):
    """Raised when no background point can be drawn inside the study extent."""


class GridMismatch(SDMError):
    """Raised when two rasters, or a model and a raster, do not share a schema."""


class SingularFit(SDMError):
    """Raised when a logistic fit cannot be solved for a design matrix.

    The variable search catches this and scores the subset as +inf.
    """


class SearchCancelled(SDMError):
    """Raised when a variable search is cancelled before any subset was scored."""


class SDMWarning(UserWarning):
    """Base class for recoverable numerical or data irregularities."""


class NonConvergence(SDMWarning):
    """Emitted when IRLS stops at the iteration limit before converging."""


class OutOfBoundsPoint(SDMWarning):
    """Emitted when points fall outside a grid and are given no data."""
