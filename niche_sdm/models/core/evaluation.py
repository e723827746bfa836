"""Model evaluation functionality for SDM models."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

import numpy as np
import pandas as pd
import xarray as xr
from scipy.stats import pearsonr
from sklearn.metrics import roc_auc_score

from niche_sdm.models.core.training import LogisticModel

logger = logging.getLogger(__name__)

THRESHOLD_STEP = 1e-4


class ThresholdMethod(StrEnum):
    PREVALENCE = "prevalence"
    MAX_SSS = "max_sss"


@dataclass
class EvaluationResult:
    auc: float
    correlation: float
    threshold: float
    presence_scores: np.ndarray = field(repr=False)
    background_scores: np.ndarray = field(repr=False)

    @property
    def n_presence(self) -> int:
        return len(self.presence_scores)

    @property
    def n_background(self) -> int:
        return len(self.background_scores)

    def to_dict(self) -> dict:
        return {
            "auc": self.auc,
            "correlation": self.correlation,
            "threshold": self.threshold,
            "n_presence": self.n_presence,
            "n_background": self.n_background,
        }


def _finite(scores) -> np.ndarray:
    scores = np.asarray(scores, dtype=float)
    return scores[np.isfinite(scores)]


def _fraction_above(sorted_scores: np.ndarray, cutoffs: np.ndarray) -> np.ndarray:
    """Fraction of scores strictly greater than each cutoff."""
    if len(sorted_scores) == 0:
        return np.zeros_like(cutoffs)
    n_at_or_below = np.searchsorted(sorted_scores, cutoffs, side="right")
    return (len(sorted_scores) - n_at_or_below) / len(sorted_scores)


def _midpoint_of_best_run(cutoffs: np.ndarray, objective: np.ndarray) -> float:
    """Midpoint of the longest contiguous run of cutoffs where `objective` is minimal."""
    best = objective.min()
    is_best = np.isclose(objective, best, rtol=0, atol=1e-12)
    best_start, best_len = 0, 0
    start = None
    for i, flag in enumerate(np.append(is_best, False)):
        if flag and start is None:
            start = i
        elif not flag and start is not None:
            if i - start > best_len:
                best_start, best_len = start, i - start
            start = None
    return float((cutoffs[best_start] + cutoffs[best_start + best_len - 1]) / 2)


def threshold(
    evaluation: EvaluationResult,
    method: ThresholdMethod = ThresholdMethod.PREVALENCE,
    step: float = THRESHOLD_STEP,
) -> float:
    """
    Find a presence/absence cutoff by scanning the unit interval.

    Methods:
        prevalence: the cutoff where the modeled prevalence (fraction of all evaluated
            points scoring above the cutoff) is closest to the observed prevalence
            (n_presence / n_total).
        max_sss: the cutoff that maximises sensitivity + specificity.

    When several neighbouring cutoffs are equally good, the midpoint of the longest
    run of them is returned.

    Args:
        evaluation: Evaluation holding presence and background scores.
        method: Threshold method.
        step: Spacing of the scanned cutoffs.

    Returns:
        The cutoff in [0, 1].
    """
    method = ThresholdMethod(method)
    presence = np.sort(_finite(evaluation.presence_scores))
    background = np.sort(_finite(evaluation.background_scores))
    if len(presence) == 0 or len(background) == 0:
        raise ValueError("Thresholds need at least one presence and one background score")

    n_steps = int(round(1.0 / step))
    cutoffs = np.linspace(0.0, 1.0, n_steps + 1)
    sensitivity = _fraction_above(presence, cutoffs)
    false_positive_rate = _fraction_above(background, cutoffs)

    if method == ThresholdMethod.PREVALENCE:
        n_total = len(presence) + len(background)
        observed = len(presence) / n_total
        modeled = (sensitivity * len(presence) + false_positive_rate * len(background)) / n_total
        objective = np.abs(modeled - observed)
    elif method == ThresholdMethod.MAX_SSS:
        objective = -(sensitivity + (1.0 - false_positive_rate))
    else:
        raise ValueError(f"Unknown threshold method: {method}")

    cutoff = _midpoint_of_best_run(cutoffs, objective)
    logger.info(f"Threshold ({method.value}): {cutoff:.4f}")
    return cutoff


def evaluate(
    presence_features: pd.DataFrame,
    background_features: pd.DataFrame,
    model: LogisticModel,
    method: ThresholdMethod = ThresholdMethod.PREVALENCE,
    step: float = THRESHOLD_STEP,
) -> EvaluationResult:
    """Score presence and background rows and summarise how well the model separates them.

    AUC is the probability that a random presence outscores a random background
    point (ties count one half). Correlation is the Pearson correlation between the
    0/1 labels and the scores. Rows with missing features are ignored.
    """
    presence_scores = _finite(model.predict_proba(presence_features))
    background_scores = _finite(model.predict_proba(background_features))
    if len(presence_scores) == 0 or len(background_scores) == 0:
        raise ValueError("Evaluation needs at least one scored presence and background row")

    labels = np.concatenate([np.ones(len(presence_scores)), np.zeros(len(background_scores))])
    scores = np.concatenate([presence_scores, background_scores])

    auc = float(roc_auc_score(labels, scores))
    if np.ptp(scores) == 0:
        logger.warning("All scores are identical; correlation is undefined.")
        correlation = float("nan")
    else:
        correlation = float(pearsonr(labels, scores)[0])

    result = EvaluationResult(
        auc=auc,
        correlation=correlation,
        threshold=float("nan"),
        presence_scores=presence_scores,
        background_scores=background_scores,
    )
    result.threshold = threshold(result, method, step)
    logger.info(
        f"Evaluation: AUC={auc:.4f}, correlation={correlation:.4f}, "
        f"threshold={result.threshold:.4f}"
    )
    return result


def apply_threshold(surface: xr.DataArray, cutoff: float) -> xr.DataArray:
    """1.0 where the probability exceeds `cutoff`, 0.0 elsewhere, NaN where there is no data."""
    binary = xr.where(surface.isnull(), np.nan, (surface > cutoff).astype(float))
    binary = binary.assign_attrs(surface.attrs)
    binary.name = "presence"
    return binary
