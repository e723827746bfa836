"""Logistic regression fitting for presence/background data."""

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy.special import expit
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from niche_sdm.errors import NonConvergence, SingularFit

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 25
TOLERANCE = 1e-8
SEPARATION_TOLERANCE = 1e-6


@dataclass
class LogisticModel:
    """A fitted binomial GLM with a logit link.

    `coefficients[0]` is the intercept, the rest follow the order of `variables`.
    """

    variables: Tuple[str, ...]
    coefficients: np.ndarray
    log_likelihood: float
    n_iterations: int
    converged: bool
    separated: bool = False
    n_observations: int = 0
    history: List[float] = field(default_factory=list, repr=False)

    @property
    def n_parameters(self) -> int:
        return len(self.coefficients)

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def aic(self) -> float:
        return 2.0 * self.n_parameters - 2.0 * self.log_likelihood

    @property
    def intercept(self) -> float:
        return float(self.coefficients[0])

    def coefficient_table(self) -> pd.Series:
        return pd.Series(
            self.coefficients, index=["(Intercept)", *self.variables], name="coefficient"
        )

    def predict_proba(self, features: pd.DataFrame) -> np.ndarray:
        """Probability of presence for each row; NaN where any variable is missing."""
        X = features[list(self.variables)].to_numpy(dtype=float)
        return predict_probability_array(self.coefficients, X)


def design_matrix(features: np.ndarray) -> np.ndarray:
    """Prepend an intercept column to a 2D feature array."""
    features = np.asarray(features, dtype=float)
    if features.ndim == 1:
        features = features[:, None]
    return np.column_stack([np.ones(len(features)), features])


def log_likelihood(y: np.ndarray, eta: np.ndarray) -> float:
    """Bernoulli log-likelihood from the linear predictor."""
    return float(np.sum(y * eta - np.logaddexp(0.0, eta)))


def predict_probability_array(coefficients: np.ndarray, X: np.ndarray) -> np.ndarray:
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X[None, :]
    if X.shape[1] != len(coefficients) - 1:
        raise ValueError(
            f"Expected {len(coefficients) - 1} features, got {X.shape[1]}"
        )
    eta = coefficients[0] + X @ coefficients[1:]
    # NaN features propagate to NaN probabilities
    return expit(eta)


def predict_probability(coefficients: Sequence[float], feature_row: Sequence[float]) -> float:
    """p = 1 / (1 + exp(-(b0 + sum(bi * xi)))). Missing features give NaN, never zero."""
    coefficients = np.asarray(coefficients, dtype=float)
    row = np.asarray(feature_row, dtype=float)
    return float(predict_probability_array(coefficients, row.reshape(1, -1))[0])


def is_separated(y: np.ndarray, eta: np.ndarray) -> bool:
    """
    True when the linear predictor splits the classes, so no finite MLE exists.

    Covers complete separation (every presence scores above every background row)
    and quasi-complete separation (the classes only meet at tied scores), as well as
    fitted probabilities that already sit on their labels.
    """
    presence, background = eta[y == 1], eta[y == 0]
    if np.ptp(eta) > 0 and presence.min() >= background.max():
        return True
    return bool(np.max(np.abs(y - expit(eta))) < SEPARATION_TOLERANCE)


def fit_logistic(
    X: np.ndarray,
    y: np.ndarray,
    variables: Sequence[str] = (),
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> LogisticModel:
    """
    Fit a logistic regression with a statsmodels binomial GLM, solved by IRLS.

    IRLS starts from zero coefficients and stops when the deviance changes by less
    than `tolerance`. If that does not happen within `max_iterations` a
    NonConvergence warning is emitted and the last iterate is returned with
    `converged=False`.

    Args:
        X: Feature array (n_observations, n_features), without an intercept column.
        y: Binary response.
        variables: Names of the feature columns.
        max_iterations: Iteration limit.
        tolerance: Deviance change below which the fit has converged.

    Returns:
        The fitted LogisticModel. `separated` is set when the fitted linear
        predictor separates presences from background rows.

    Raises:
        SingularFit: If the design matrix is rank deficient, the response has a single
            class, or the weighted least squares step cannot be solved.
    """
    X = design_matrix(X)
    y = np.asarray(y, dtype=float)
    n, p = X.shape
    variables = tuple(variables)
    if len(variables) != p - 1:
        raise ValueError(f"Got {len(variables)} variable names for {p - 1} features")
    if len(y) != n:
        raise ValueError(f"X has {n} rows but y has {len(y)}")
    if not np.all(np.isfinite(X)):
        raise ValueError("Features contain missing or non-finite values")
    if not np.all((y == 0) | (y == 1)):
        raise ValueError("Response must be binary (0/1)")

    if np.unique(y).size < 2:
        raise SingularFit("Response has a single class")
    if np.linalg.matrix_rank(X) < p:
        raise SingularFit(f"Design matrix for {list(variables)} is rank deficient")

    glm = sm.GLM(y, X, family=sm.families.Binomial())
    with warnings.catch_warnings():
        # Both conditions are reported through the returned model instead
        warnings.simplefilter("ignore", ConvergenceWarning)
        warnings.simplefilter("ignore", PerfectSeparationWarning)
        warnings.simplefilter("ignore", RuntimeWarning)
        try:
            results = glm.fit(
                start_params=np.zeros(p),
                method="IRLS",
                maxiter=max_iterations,
                tol=tolerance,
            )
        except np.linalg.LinAlgError as e:
            raise SingularFit(f"IRLS step for {list(variables)} is singular") from e
        except PerfectSeparationError as e:
            raise SingularFit(f"Classes are perfectly separated by {list(variables)}") from e

    beta = np.asarray(results.params, dtype=float)
    if not np.all(np.isfinite(beta)):
        raise SingularFit(f"Non-finite coefficients for {list(variables)}")

    eta = X @ beta
    converged = bool(results.converged)
    n_iterations = int(results.fit_history["iteration"])
    # The first entry is a placeholder before the start values
    history = [float(d) for d in results.fit_history["deviance"][1:]]
    separated = is_separated(y, eta)

    if not converged:
        logger.warning(
            f"Logistic fit for {list(variables)} did not converge in {max_iterations} iterations."
        )
        warnings.warn(
            f"IRLS did not converge in {max_iterations} iterations for {list(variables)}; "
            "returning the last iterate.",
            NonConvergence,
            stacklevel=2,
        )
    if separated:
        logger.debug(f"Linear predictor separates the classes for {list(variables)}.")

    return LogisticModel(
        variables=variables,
        coefficients=beta,
        log_likelihood=log_likelihood(y, eta),
        n_iterations=n_iterations,
        converged=converged,
        separated=separated,
        n_observations=n,
        history=history,
    )


def fit_distribution_model(
    training_set: pd.DataFrame,
    variables: Sequence[str],
    response_column: str = "class",
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> LogisticModel:
    """Fit `response ~ variables` on a training table."""
    variables = list(variables)
    if not variables:
        raise ValueError("At least one predictor variable is required")
    missing = [v for v in [response_column, *variables] if v not in training_set.columns]
    if missing:
        raise KeyError(f"Training set is missing columns: {missing}")

    data = training_set[[response_column, *variables]].dropna()
    if len(data) < len(training_set):
        logger.info(f"Dropped {len(training_set) - len(data)} rows with missing values.")

    model = fit_logistic(
        data[variables].to_numpy(dtype=float),
        data[response_column].to_numpy(dtype=float),
        variables=variables,
        max_iterations=max_iterations,
        tolerance=tolerance,
    )
    logger.info(
        f"Fitted {response_column} ~ {' + '.join(variables)}: AIC={model.aic:.3f}, "
        f"iterations={model.n_iterations}, converged={model.converged}"
    )
    return model
