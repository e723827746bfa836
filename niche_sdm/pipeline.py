"""
Predator/prey distribution pipeline.

Each species is modelled independently on a shared study extent: occurrence
filtering, background sampling, exhaustive AIC variable selection, a final
logistic refit, grid prediction, evaluation and thresholding. The two fitted
models are then projected onto a future climate grid and their overlap is
measured under both climates.
"""

import logging
from typing import Any, Dict, List, Optional

import geopandas as gpd
import xarray as xr
from pydantic import BaseModel, ConfigDict

from niche_sdm.config import PipelineConfig
from niche_sdm.errors import EmptyBackgroundSample, EmptyOccurrenceSet, SDMError
from niche_sdm.extract import RESPONSE_COLUMN, build_training_set
from niche_sdm.geo import StudyExtent
from niche_sdm.models.core.evaluation import EvaluationResult, apply_threshold, evaluate
from niche_sdm.models.core.prediction import predict_model_grid
from niche_sdm.models.core.selection import (
    CandidateModel,
    best_candidate,
    evaluate_subsets,
)
from niche_sdm.models.core.training import LogisticModel, fit_distribution_model
from niche_sdm.occurrence import filter_to_extent, require_occurrences, sample_background_points
from niche_sdm.overlap import OverlapScore, combine, niche_overlap
from niche_sdm.raster.grid import check_band_schema, crop_to_extent
from niche_sdm.raster.mask import land_mask_from_grid

logger = logging.getLogger(__name__)


class SpeciesRun(BaseModel):
    """Everything produced by one species run under current climate."""

    species: str
    occurrences: gpd.GeoDataFrame
    background: gpd.GeoDataFrame
    candidates: List[CandidateModel]
    selected: CandidateModel
    model: LogisticModel
    surface: xr.DataArray
    binary_surface: xr.DataArray
    evaluation: EvaluationResult

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def summary(self) -> Dict[str, Any]:
        return {
            "species": self.species,
            "n_occurrences": len(self.occurrences),
            "n_background": len(self.background),
            "n_candidates": len(self.candidates),
            "selected_variables": list(self.selected.variables),
            "selection_aic": self.selected.aic,
            "coefficients": self.model.coefficient_table().to_dict(),
            "model_aic": self.model.aic,
            "converged": self.model.converged,
            **self.evaluation.to_dict(),
        }


class ComparisonResult(BaseModel):
    """Both species runs plus their future projections and overlap scores."""

    extent: StudyExtent
    predator: SpeciesRun
    prey: SpeciesRun
    predator_future: xr.DataArray
    prey_future: xr.DataArray
    predator_future_binary: xr.DataArray
    prey_future_binary: xr.DataArray
    combined_current: xr.DataArray
    combined_future: xr.DataArray
    current_overlap: OverlapScore
    future_overlap: OverlapScore

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def summary(self) -> Dict[str, Any]:
        return {
            "extent": dict(
                zip(("lon_min", "lon_max", "lat_min", "lat_max"),
                    (self.extent.lon_min, self.extent.lon_max,
                     self.extent.lat_min, self.extent.lat_max))
            ),
            "predator": self.predator.summary(),
            "prey": self.prey.summary(),
            "current_overlap": self.current_overlap.to_dict(),
            "future_overlap": self.future_overlap.to_dict(),
        }


def run_species(
    species: str,
    occurrences: gpd.GeoDataFrame,
    climate_grid: xr.Dataset,
    land_mask: xr.DataArray,
    extent: StudyExtent,
    config: Optional[PipelineConfig] = None,
) -> SpeciesRun:
    """
    Fit and evaluate a distribution model for one species.

    Args:
        species: Label used in logs and error messages.
        occurrences: Cleaned occurrence points (see `clean_occurrence_records`).
        climate_grid: Current climate grid holding the candidate variables.
        land_mask: Cells where background points may be drawn.
        extent: Study extent for filtering, sampling and prediction.
        config: Pipeline settings. Defaults to `PipelineConfig()`.

    Returns:
        SpeciesRun with the selected variables, fitted model, probability surface
        and evaluation.

    Raises:
        EmptyOccurrenceSet, EmptyBackgroundSample, GridMismatch, SingularFit: with the
            species named in the message.
    """
    config = config or PipelineConfig()
    logger.info(f"Processing model for: {species}")
    try:
        return _run_species(species, occurrences, climate_grid, land_mask, extent, config)
    except SDMError as e:
        logger.error(f"Model run failed for {species}: {e}")
        if species in str(e):
            raise
        raise type(e)(f"{species}: {e}") from e


def _run_species(
    species: str,
    occurrences: gpd.GeoDataFrame,
    climate_grid: xr.Dataset,
    land_mask: xr.DataArray,
    extent: StudyExtent,
    config: PipelineConfig,
) -> SpeciesRun:
    occurrences = filter_to_extent(
        occurrences, extent.lon_min, extent.lon_max, extent.lat_min, extent.lat_max
    )
    require_occurrences(occurrences, species)

    background = sample_background_points(
        land_mask, extent, n_background_points=config.n_background_points, seed=config.seed
    )
    if len(background) == 0:
        raise EmptyBackgroundSample(
            f"No valid land cells inside {extent.bounds} to draw background points for {species}."
        )

    training_set = build_training_set(
        occurrences, background, climate_grid, variables=config.candidate_variables
    )
    is_presence = training_set[RESPONSE_COLUMN] == 1
    if not is_presence.any():
        raise EmptyOccurrenceSet(f"No occurrence point of {species} has climate data.")
    if is_presence.all():
        raise EmptyBackgroundSample(f"No background point for {species} has climate data.")

    candidates = evaluate_subsets(
        training_set,
        RESPONSE_COLUMN,
        config.candidate_variables,
        n_jobs=config.n_jobs,
        max_iterations=config.max_iterations,
        tolerance=config.tolerance,
        max_candidate_variables=config.max_candidate_variables,
    )
    selected = best_candidate(candidates)
    logger.info(f"{species}: selected {list(selected.variables)} (AIC={selected.aic:.3f})")

    # Refit on the winning subset
    model = fit_distribution_model(
        training_set,
        selected.variables,
        response_column=RESPONSE_COLUMN,
        max_iterations=config.max_iterations,
        tolerance=config.tolerance,
    )
    if not model.converged:
        logger.warning(f"{species}: final model did not converge; results are lower confidence.")

    surface = predict_model_grid(model, climate_grid, extent, window_size=config.window_size)

    features = training_set.drop(columns=[RESPONSE_COLUMN])
    evaluation = evaluate(
        features[is_presence],
        features[~is_presence],
        model,
        method=config.threshold_method,
        step=config.threshold_step,
    )
    binary_surface = apply_threshold(surface, evaluation.threshold)

    return SpeciesRun(
        species=species,
        occurrences=occurrences,
        background=background,
        candidates=candidates,
        selected=selected,
        model=model,
        surface=surface,
        binary_surface=binary_surface,
        evaluation=evaluation,
    )


def project_species(
    run: SpeciesRun,
    climate_grid: xr.Dataset,
    extent: StudyExtent,
    reference_grid: Optional[xr.Dataset] = None,
    window_size: int = 256,
) -> xr.DataArray:
    """Apply a fitted species model to another climate grid, e.g. a future scenario."""
    if reference_grid is not None:
        check_band_schema(reference_grid, climate_grid)
    logger.info(f"Projecting {run.species} model onto a new climate grid.")
    return predict_model_grid(run.model, climate_grid, extent, window_size=window_size)


def compare_species(
    predator: str,
    predator_occurrences: gpd.GeoDataFrame,
    prey: str,
    prey_occurrences: gpd.GeoDataFrame,
    current_grid: xr.Dataset,
    future_grid: xr.Dataset,
    land_mask: Optional[xr.DataArray] = None,
    config: Optional[PipelineConfig] = None,
) -> ComparisonResult:
    """
    Model both species on a shared extent and measure their overlap now and in future.

    The extent covers both occurrence sets plus `config.buffer_degrees`. When no land
    mask is given, cells where every current climate band has data are used.
    Future presence maps reuse each species' current-climate threshold.
    """
    config = config or PipelineConfig()
    check_band_schema(current_grid, future_grid)

    for name, occurrences in ((predator, predator_occurrences), (prey, prey_occurrences)):
        require_occurrences(occurrences, name)
    extent = StudyExtent.from_occurrences(
        predator_occurrences, prey_occurrences, buffer=config.buffer_degrees
    )

    if land_mask is None:
        land_mask = land_mask_from_grid(crop_to_extent(current_grid, extent))

    predator_run = run_species(
        predator, predator_occurrences, current_grid, land_mask, extent, config
    )
    prey_run = run_species(prey, prey_occurrences, current_grid, land_mask, extent, config)

    predator_future = project_species(
        predator_run, future_grid, extent, current_grid, window_size=config.window_size
    )
    prey_future = project_species(
        prey_run, future_grid, extent, current_grid, window_size=config.window_size
    )

    current_overlap = niche_overlap(predator_run.surface, prey_run.surface)
    future_overlap = niche_overlap(predator_future, prey_future)
    logger.info(
        f"Schoener's D {current_overlap.schoeners_d:.4f} -> {future_overlap.schoeners_d:.4f}, "
        f"Warren's I {current_overlap.warrens_i:.4f} -> {future_overlap.warrens_i:.4f}"
    )

    return ComparisonResult(
        extent=extent,
        predator=predator_run,
        prey=prey_run,
        predator_future=predator_future,
        prey_future=prey_future,
        predator_future_binary=apply_threshold(
            predator_future, predator_run.evaluation.threshold
        ),
        prey_future_binary=apply_threshold(prey_future, prey_run.evaluation.threshold),
        combined_current=combine(predator_run.surface, prey_run.surface),
        combined_future=combine(predator_future, prey_future),
        current_overlap=current_overlap,
        future_overlap=future_overlap,
    )
