"""
Species distribution models: logistic fitting, variable selection, prediction and evaluation.
"""

from .core import (
    LogisticModel,
    fit_distribution_model,
    select_variables,
    predict_grid,
    evaluate,
)

__all__ = [
    'LogisticModel',
    'fit_distribution_model',
    'select_variables',
    'predict_grid',
    'evaluate',
]
