"""Exhaustive AIC-based selection of predictor subsets.

Selection and final fitting are two separate steps: `select_variables` only
returns the winning subset and its AIC, the caller refits the final model on that
subset with `fit_distribution_model`.
"""

import logging
import math
import threading
import warnings
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from niche_sdm.errors import NonConvergence, SearchCancelled, SingularFit
from niche_sdm.models.core.training import fit_logistic, MAX_ITERATIONS, TOLERANCE

logger = logging.getLogger(__name__)

MAX_CANDIDATE_VARIABLES = 12


@dataclass(frozen=True)
class CandidateModel:
    """One evaluated subset. Singular subsets carry `aic=inf` and no coefficients."""

    variables: Tuple[str, ...]
    aic: float
    coefficients: Optional[np.ndarray] = None
    converged: bool = True
    singular: bool = False
    complete: bool = True

    @property
    def n_parameters(self) -> int:
        return len(self.variables) + 1


def enumerate_subsets(candidate_variables: Sequence[str]) -> Iterator[Tuple[str, ...]]:
    """Every non-empty subset, by size and then lexicographically by variable name."""
    ordered = sorted(set(candidate_variables))
    for size in range(1, len(ordered) + 1):
        yield from combinations(ordered, size)


def evaluate_subset(
    X: np.ndarray,
    y: np.ndarray,
    columns: Sequence[str],
    subset: Tuple[str, ...],
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> CandidateModel:
    """Fit one subset and score it. Singular or separated fits score +inf."""
    idx = [columns.index(v) for v in subset]
    with warnings.catch_warnings():
        # Non-convergence is reported once per candidate through the flag below
        warnings.simplefilter("ignore", NonConvergence)
        try:
            model = fit_logistic(
                X[:, idx],
                y,
                variables=subset,
                max_iterations=max_iterations,
                tolerance=tolerance,
            )
        except SingularFit as e:
            logger.debug(f"Subset {subset} is singular: {e}")
            return CandidateModel(variables=subset, aic=math.inf, singular=True)

    if model.separated:
        logger.debug(f"Subset {subset} perfectly separates the classes.")
        return CandidateModel(
            variables=subset,
            aic=math.inf,
            coefficients=model.coefficients,
            converged=model.converged,
            singular=True,
        )
    return CandidateModel(
        variables=subset,
        aic=model.aic,
        coefficients=model.coefficients,
        converged=model.converged,
    )


def evaluate_subsets(
    training_set: pd.DataFrame,
    response_column: str,
    candidate_variables: Sequence[str],
    n_jobs: int = 1,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
    max_candidate_variables: int = MAX_CANDIDATE_VARIABLES,
    cancel_event: Optional[threading.Event] = None,
    batch_size: Optional[int] = None,
) -> List[CandidateModel]:
    """
    Fit a logistic model for every non-empty subset of the candidate variables.

    Subsets are evaluated in batches. Between batches the optional `cancel_event` is
    checked and, when set, the search stops and returns the candidates evaluated so far.

    Args:
        training_set: Training table with the response and candidate columns.
        response_column: Name of the binary response column.
        candidate_variables: Predictor names to combine.
        n_jobs: Number of joblib workers for the subset fits.
        max_iterations: IRLS iteration limit per fit.
        tolerance: IRLS deviance tolerance per fit.
        max_candidate_variables: Upper bound on the number of candidates (the search is
            exponential in it).
        cancel_event: Optional event used to stop the search early.
        batch_size: Subsets per batch. Defaults to 4 per worker.

    Returns:
        Candidates in enumeration order.
    """
    candidates = sorted(set(candidate_variables))
    if not candidates:
        raise ValueError("At least one candidate variable is required")
    if len(candidates) > max_candidate_variables:
        raise ValueError(
            f"{len(candidates)} candidate variables would require {2 ** len(candidates) - 1} "
            f"fits; the limit is {max_candidate_variables} variables."
        )
    missing = [v for v in [response_column, *candidates] if v not in training_set.columns]
    if missing:
        raise KeyError(f"Training set is missing columns: {missing}")

    data = training_set[[response_column, *candidates]].dropna()
    X = data[candidates].to_numpy(dtype=float)
    y = data[response_column].to_numpy(dtype=float)

    subsets = list(enumerate_subsets(candidates))
    n_workers = max(1, n_jobs if n_jobs > 0 else len(subsets))
    batch_size = batch_size or max(1, 4 * n_workers)
    logger.info(f"Evaluating {len(subsets)} variable subsets of {candidates}...")

    results: List[CandidateModel] = []
    for start in range(0, len(subsets), batch_size):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(
                f"Variable search cancelled after {len(results)} of {len(subsets)} subsets."
            )
            break
        batch = subsets[start : start + batch_size]
        if n_jobs == 1:
            results.extend(
                evaluate_subset(X, y, candidates, subset, max_iterations, tolerance)
                for subset in batch
            )
        else:
            results.extend(
                Parallel(n_jobs=n_jobs)(
                    delayed(evaluate_subset)(X, y, candidates, subset, max_iterations, tolerance)
                    for subset in batch
                )
            )

    n_singular = sum(c.singular for c in results)
    if n_singular:
        logger.info(f"{n_singular} subsets were singular and excluded.")
    return results


def best_candidate(candidates: Sequence[CandidateModel]) -> CandidateModel:
    """Lowest AIC; exact ties go to the first candidate in enumeration order."""
    if not candidates:
        raise SearchCancelled("Search was cancelled before any subset was evaluated.")
    finite = [c for c in candidates if np.isfinite(c.aic)]
    if not finite:
        raise SingularFit("Every candidate subset was singular; no model can be selected.")
    return min(finite, key=lambda c: c.aic)


def select_variables(
    training_set: pd.DataFrame,
    response_column: str,
    candidate_variables: Sequence[str],
    **kwargs,
) -> CandidateModel:
    """Select the subset of `candidate_variables` that minimises AIC.

    Keyword arguments are passed to `evaluate_subsets`. When the search is cancelled
    the best subset seen so far is returned with `complete=False`.
    """
    candidates = evaluate_subsets(
        training_set, response_column, candidate_variables, **kwargs
    )
    best = best_candidate(candidates)
    n_subsets = 2 ** len(set(candidate_variables)) - 1
    if len(candidates) < n_subsets:
        best = replace(best, complete=False)
    logger.info(f"Selected variables {list(best.variables)} with AIC={best.aic:.3f}")
    return best


def candidate_table(candidates: Sequence[CandidateModel]) -> pd.DataFrame:
    """Candidates ranked by AIC, with the AIC difference to the best one."""
    table = pd.DataFrame(
        {
            "variables": [" + ".join(c.variables) for c in candidates],
            "n_parameters": [c.n_parameters for c in candidates],
            "aic": [c.aic for c in candidates],
            "converged": [c.converged for c in candidates],
            "singular": [c.singular for c in candidates],
        }
    )
    table = table.sort_values("aic", kind="stable").reset_index(drop=True)
    finite = table["aic"][np.isfinite(table["aic"])]
    table["delta_aic"] = table["aic"] - (finite.min() if len(finite) else np.nan)
    return table
