from .training import LogisticModel, fit_distribution_model, fit_logistic, predict_probability
from .selection import CandidateModel, select_variables, evaluate_subsets, candidate_table
from .prediction import predict_grid, predict_model_grid
from .evaluation import EvaluationResult, ThresholdMethod, apply_threshold, evaluate, threshold

__all__ = [
    "LogisticModel",
    "fit_distribution_model",
    "fit_logistic",
    "predict_probability",
    "CandidateModel",
    "select_variables",
    "evaluate_subsets",
    "candidate_table",
    "predict_grid",
    "predict_model_grid",
    "EvaluationResult",
    "ThresholdMethod",
    "apply_threshold",
    "evaluate",
    "threshold",
]
